from .base import Base
from .control import Control
from .framework import (
    ControlPriority,
    ControlRiskLevel,
    Framework,
    FrameworkControl,
    FrameworkStatus,
    FrameworkType,
    ImplementationStatus,
)
from .risk import Risk, RiskControl, RiskRating, RiskTreatment

__all__ = [
    "Base",
    "Control",
    "Framework", "FrameworkControl",
    "FrameworkType", "FrameworkStatus", "ImplementationStatus",
    "ControlPriority", "ControlRiskLevel",
    "Risk", "RiskControl", "RiskRating", "RiskTreatment",
]
