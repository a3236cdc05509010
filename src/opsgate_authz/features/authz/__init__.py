from .engine import AuthorizationEngine, Identity
from .schemas import AuthorizationDecision, DecisionReason, PermissionQuery

__all__ = [
    "AuthorizationDecision",
    "AuthorizationEngine",
    "DecisionReason",
    "Identity",
    "PermissionQuery",
]
