"""Values exchanged between the decision, transfer and orchestration layers."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Optional, Union

from bucket_sync.exceptions import NotFoundError, ReadError
from bucket_sync.smart_sync.checksum import Fingerprint, fingerprint, parse_etag

# Object tag holding the real content MD5 of multipart uploads.
MULTIPART_TAG_KEY = "MultipartETag"


class Verification(str, Enum):
    NOT_CHECKED = "not-checked"
    MATCH = "match"
    NO_MATCH = "no-match"
    MULTIPART_UNVERIFIED = "multipart-unverified"


class TransferOutcome(str, Enum):
    SKIPPED_EXISTS = "skipped-exists"
    SKIPPED_UP_TO_DATE = "skipped-up-to-date"
    TRANSFERRED = "transferred"
    DRY_RUN_WOULD_TRANSFER = "dry-run-would-transfer"
    FAILED = "failed"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    DRY_RUN_WOULD_DELETE = "dry-run-would-delete"
    DECLINED = "declined"
    ABORTED = "aborted"
    FAILED = "failed"


class DecisionAction(str, Enum):
    NEEDS_TRANSFER = "needs-transfer"
    SKIPPED_EXISTS = "skipped-exists"
    SKIPPED_UP_TO_DATE = "skipped-up-to-date"


@dataclass(frozen=True)
class ChangeDecision:
    """Whether a transfer is needed, and why."""

    action: DecisionAction
    reason: str

    @property
    def needs_transfer(self) -> bool:
        return self.action is DecisionAction.NEEDS_TRANSFER

    def skip_outcome(self) -> TransferOutcome:
        """TransferOutcome reported for a decision that skips the transfer."""
        if self.action is DecisionAction.SKIPPED_EXISTS:
            return TransferOutcome.SKIPPED_EXISTS
        return TransferOutcome.SKIPPED_UP_TO_DATE


@dataclass(frozen=True)
class LocalFile:
    """Snapshot of a local file taken at decision time."""

    path: Path
    size: int

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "LocalFile":
        full_path = Path(path).expanduser().resolve()
        try:
            stat = full_path.stat()
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}") from e
        except OSError as e:
            raise ReadError(f"Cannot stat {path}: {e.strerror or e}") from e
        if not full_path.is_file():
            raise NotFoundError(f"Not a regular file: {path}")
        return cls(path=full_path, size=stat.st_size)

    @cached_property
    def fingerprint(self) -> str:
        """MD5 of the content, computed on first access."""
        return fingerprint(self.path)


@dataclass(frozen=True)
class RemoteObject:
    """Metadata of a stored object."""

    key: str
    size: int
    last_modified: Optional[datetime]
    fingerprint: Fingerprint
    side_channel_tag: Optional[str] = None

    @classmethod
    def from_listing(cls, item: Dict[str, Any]) -> "RemoteObject":
        """Build from a list_objects_v2 'Contents' item."""
        return cls(
            key=item["Key"],
            size=int(item.get("Size", 0)),
            last_modified=item.get("LastModified"),
            fingerprint=parse_etag(item.get("ETag", "")),
        )

    @classmethod
    def from_head(cls, key: str, response: Dict[str, Any]) -> "RemoteObject":
        """Build from a head_object response."""
        return cls(
            key=key,
            size=int(response.get("ContentLength", 0)),
            last_modified=response.get("LastModified"),
            fingerprint=parse_etag(response.get("ETag", "")),
        )

    @property
    def is_multipart(self) -> bool:
        return self.fingerprint.is_multipart


@dataclass(frozen=True)
class ListEntry:
    """A listed object with the result of local verification."""

    remote: RemoteObject
    verification: Verification = Verification.NOT_CHECKED

    @property
    def key(self) -> str:
        return self.remote.key

    @property
    def size(self) -> int:
        return self.remote.size
