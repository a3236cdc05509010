"""Account lifecycle: status store, reconciler and administration.

The login gate lives in ``.login`` and is imported from there directly.
"""

from .admin import AccountAdminService
from .reconciler import ReconcileResult, SuspensionReconciler, SweepResult, run_forever, run_sweep
from .repository import AccountsRepository
from .status import AccountStatusService, evaluate_usability, is_locked

__all__ = [
    "AccountAdminService",
    "AccountStatusService",
    "AccountsRepository",
    "ReconcileResult",
    "SuspensionReconciler",
    "SweepResult",
    "evaluate_usability",
    "is_locked",
    "run_forever",
    "run_sweep",
]
