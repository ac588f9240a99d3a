"""Smart Sync - idempotent synchronization between local files and a bucket."""

from bucket_sync.smart_sync.checksum import ChecksumCalculator, fingerprint, parse_etag
from bucket_sync.smart_sync.models import (
    DeleteOutcome,
    ListEntry,
    LocalFile,
    RemoteObject,
    TransferOutcome,
    Verification,
)
from bucket_sync.smart_sync.multipart import part_threshold
from bucket_sync.smart_sync.sync_engine import BucketSync, ConfirmResponse

__all__ = [
    "BucketSync",
    "ChecksumCalculator",
    "ConfirmResponse",
    "DeleteOutcome",
    "ListEntry",
    "LocalFile",
    "RemoteObject",
    "TransferOutcome",
    "Verification",
    "fingerprint",
    "parse_etag",
    "part_threshold",
]
