"""Reconciliation of the on-device order store with the remote document store."""

from .canonical import canonical_digest, canonical_json, diff_paths, is_equal
from .directory import DirectoryEntry, DirectoryStore, DirectorySync, UploadResult
from .engine import ReconcileReport, ReconciliationEngine, RecordOutcome
from .manager import CloudSyncError, OrderSyncManager, SyncConfig
from .remote import (
    ConflictError,
    DocumentStoreClient,
    NetworkError,
    NotFoundError,
    RemoteDirectory,
    RemoteOrderStore,
    RemoteStoreError,
)
from .retry import RetryExhaustedError, RetryPolicy

__all__ = [
    "canonical_digest",
    "canonical_json",
    "diff_paths",
    "is_equal",
    "DirectoryEntry",
    "DirectoryStore",
    "DirectorySync",
    "UploadResult",
    "ReconcileReport",
    "ReconciliationEngine",
    "RecordOutcome",
    "CloudSyncError",
    "OrderSyncManager",
    "SyncConfig",
    "ConflictError",
    "DocumentStoreClient",
    "NetworkError",
    "NotFoundError",
    "RemoteDirectory",
    "RemoteOrderStore",
    "RemoteStoreError",
    "RetryExhaustedError",
    "RetryPolicy",
]
