"""Services implementing the credential lifecycle."""

from .base_service import SessionManagedService
from .credential_store import CredentialStore
from .history_ledger import HistoryLedger
from .import_service import BulkImportService
from .reconciliation_service import ProfileSource, ReconciliationService, reconcile

__all__ = [
    "BulkImportService",
    "CredentialStore",
    "HistoryLedger",
    "ProfileSource",
    "ReconciliationService",
    "SessionManagedService",
    "reconcile",
]
