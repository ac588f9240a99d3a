"""Decide whether a local file / remote object pair needs a transfer."""

from typing import Callable, Optional

from bucket_sync.exceptions import BucketSyncError
from bucket_sync.logger import get_logger
from bucket_sync.smart_sync.models import (
    ChangeDecision,
    DecisionAction,
    ListEntry,
    LocalFile,
    RemoteObject,
    Verification,
)

log = get_logger(__name__)

TagReader = Callable[[RemoteObject], Optional[str]]


def _transfer(reason: str) -> ChangeDecision:
    return ChangeDecision(DecisionAction.NEEDS_TRANSFER, reason)


def _lookup_tag(remote: RemoteObject, read_tag: Optional[TagReader]) -> Optional[str]:
    """Side-channel tag of a multipart object; None if absent or unreadable."""
    if remote.side_channel_tag is not None:
        return remote.side_channel_tag
    if read_tag is None:
        return None
    try:
        return read_tag(remote)
    except BucketSyncError as e:
        log.debug("Tag lookup for %s failed, treating as absent: %s", remote.key, e)
        return None


def decide_upload(
    local: LocalFile,
    remote: Optional[RemoteObject],
    no_overwrite: bool = True,
    force: bool = False,
    read_tag: Optional[TagReader] = None,
) -> ChangeDecision:
    """Decide whether ``local`` must be uploaded over ``remote``.

    Multipart objects whose tag is missing, unreadable or different are
    always re-uploaded; their ETag says nothing about the content.
    """
    if remote is None:
        return _transfer("new")
    if force:
        return _transfer("forced")
    if no_overwrite:
        return ChangeDecision(DecisionAction.SKIPPED_EXISTS, "exists")
    if remote.size != local.size:
        return _transfer("size-changed")

    if not remote.is_multipart:
        if remote.fingerprint.hash == local.fingerprint:
            return ChangeDecision(DecisionAction.SKIPPED_UP_TO_DATE, "up-to-date")
        return _transfer("content-changed")

    tag = _lookup_tag(remote, read_tag)
    if tag is None:
        return _transfer("multipart-unverified")
    if tag == local.fingerprint:
        return ChangeDecision(DecisionAction.SKIPPED_UP_TO_DATE, "up-to-date")
    return _transfer("content-changed")


def decide_download(
    local: Optional[LocalFile],
    entry: ListEntry,
    no_overwrite: bool = True,
    force: bool = False,
) -> ChangeDecision:
    """Decide whether ``entry`` must be downloaded over ``local``.

    Uses the verification computed at listing time; issues no store calls.
    """
    if force:
        return _transfer("forced")
    if local is None:
        return _transfer("new")
    if no_overwrite:
        return ChangeDecision(DecisionAction.SKIPPED_EXISTS, "exists")
    if entry.verification is Verification.MATCH:
        return ChangeDecision(DecisionAction.SKIPPED_UP_TO_DATE, "up-to-date")
    return _transfer(entry.verification.value)


def verify_entry(
    remote: RemoteObject,
    local: Optional[LocalFile],
    read_tag: Optional[TagReader] = None,
) -> Verification:
    """Compare a listed object with its local counterpart."""
    if local is None or local.size != remote.size:
        return Verification.NO_MATCH

    try:
        if not remote.is_multipart:
            matches = remote.fingerprint.hash == local.fingerprint
        else:
            tag = _lookup_tag(remote, read_tag)
            if tag is None:
                return Verification.MULTIPART_UNVERIFIED
            matches = tag == local.fingerprint
    except BucketSyncError as e:
        log.warning("Cannot fingerprint %s: %s", local.path, e)
        return Verification.NO_MATCH

    return Verification.MATCH if matches else Verification.NO_MATCH
