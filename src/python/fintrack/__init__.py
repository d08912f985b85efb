"""Public FinTrack package exports."""

from __future__ import annotations

from fintrack.__version__ import __version__
from fintrack.auth import AuthManager
from fintrack.exceptions import (
    GatewayError,
    InferenceError,
    NotAuthenticatedError,
    UnboundError,
    ValidationError,
)
from fintrack.models import (
    BudgetRecord,
    CategoryRecord,
    ExpenseDTO,
    ExpenseRecord,
    IncomeDTO,
    IncomeRecord,
    Snapshot,
)
from fintrack.persistence import Eq, NullOrEq, PersistenceBackend
from fintrack.repository import Repository
from fintrack.rest import RestGateway
from fintrack.session import SessionStore
from fintrack.synchronizer import FinanceSynchronizer

__all__ = [
    "__version__",
    "AuthManager",
    "FinanceSynchronizer",
    "GatewayError",
    "InferenceError",
    "NotAuthenticatedError",
    "UnboundError",
    "ValidationError",
    "BudgetRecord",
    "CategoryRecord",
    "ExpenseDTO",
    "ExpenseRecord",
    "IncomeDTO",
    "IncomeRecord",
    "Snapshot",
    "Eq",
    "NullOrEq",
    "PersistenceBackend",
    "Repository",
    "RestGateway",
    "SessionStore",
]
