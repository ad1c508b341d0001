"""
Authorization hook.

Routes declare the permission they need with require_permission(); the
decision is delegated to the AuthorizationPolicy returned by get_policy.
The default policy allows everything. Swap it by overriding get_policy
(app.dependency_overrides) or calling set_policy() at startup.
"""
from __future__ import annotations

import logging
from typing import Protocol

from fastapi import Depends, HTTPException

from grcportal.middleware.request_context import current_user_id

logger = logging.getLogger(__name__)


class AuthorizationPolicy(Protocol):
    def is_allowed(self, user_id: str | None, permission: str) -> bool: ...


class AllowAllPolicy:
    def is_allowed(self, user_id: str | None, permission: str) -> bool:
        return True


_policy: AuthorizationPolicy = AllowAllPolicy()


def set_policy(policy: AuthorizationPolicy) -> None:
    global _policy
    _policy = policy


def get_policy() -> AuthorizationPolicy:
    return _policy


def require_permission(permission: str):
    """Dependency for `dependencies=[...]` on a route."""

    async def _check(policy: AuthorizationPolicy = Depends(get_policy)) -> None:
        user_id = current_user_id()
        if not policy.is_allowed(user_id, permission):
            logger.warning("Permission %s denied for user %s", permission, user_id)
            raise HTTPException(403, f"Missing permission: {permission}")

    return Depends(_check)
