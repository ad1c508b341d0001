"""Completion arithmetic and recommendations, without HTTP."""
from decimal import Decimal
from types import SimpleNamespace

from grcportal.services.framework_progress import compute_completion, recommendations


def test_no_controls_is_zero():
    assert compute_completion(0, 0, 0) == Decimal("0")


def test_partial_controls_earn_half_credit():
    assert compute_completion(2, 1, 4) == Decimal("62.50")
    # 4 implemented + 2 partial out of 8 -> (4 + 1) / 8
    assert compute_completion(4, 2, 8) == Decimal("62.50")


def test_all_implemented_is_hundred():
    assert compute_completion(2, 0, 2) == Decimal("100.00")


def test_rounds_half_up_to_two_places():
    # 1 / 3 * 100 = 33.333...
    assert compute_completion(1, 0, 3) == Decimal("33.33")
    # 0.5 / 3 * 100 = 16.666...
    assert compute_completion(0, 1, 3) == Decimal("16.67")


def test_recommendations_for_weak_framework():
    fw = SimpleNamespace(completion_percentage=Decimal("10"), not_implemented_controls=8, total_controls=10)
    out = recommendations(fw, {"critical": 2, "high": 4, "medium": 0, "low": 0})
    assert any("2 critical" in r for r in out)
    assert any("below 50%" in r for r in out)
    assert any("30%" in r for r in out)
    assert any("high/critical" in r for r in out)


def test_no_recommendations_for_healthy_framework():
    fw = SimpleNamespace(completion_percentage=Decimal("90"), not_implemented_controls=0, total_controls=10)
    assert recommendations(fw, {"critical": 0, "high": 1, "medium": 2, "low": 3}) == []
