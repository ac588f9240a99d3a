"""Exception hierarchy for bucket-sync."""

from typing import Optional


class BucketSyncError(Exception):
    """Base exception for all bucket-sync errors."""
    pass


class NotFoundError(BucketSyncError):
    """A local file or the remote bucket does not exist."""
    pass


class ReadError(BucketSyncError):
    """A local file exists but could not be read."""
    pass


class AccessDeniedError(BucketSyncError):
    """The store refused the request for lack of permissions."""
    pass


class RegionMismatchError(BucketSyncError):
    """The bucket lives in a different region than the one configured."""

    def __init__(self, message: str, region: Optional[str] = None):
        super().__init__(message)
        self.region = region


class TransferError(BucketSyncError):
    """Network or service failure while moving data."""
    pass


class TagWriteError(BucketSyncError):
    """The side-channel fingerprint tag could not be written."""
    pass


class TransferCancelledError(BucketSyncError):
    """A transfer was interrupted by the user."""
    pass


class KeyMappingError(BucketSyncError):
    """An object key has no safe local path under the base directory."""
    pass
