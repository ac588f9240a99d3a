"""Performs uploads and downloads with progress and cancellation."""

import threading
from pathlib import Path
from typing import Optional

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from bucket_sync.exceptions import (
    NotFoundError,
    ReadError,
    TagWriteError,
    TransferCancelledError,
    TransferError,
)
from bucket_sync.logger import get_logger
from bucket_sync.smart_sync.models import LocalFile, TransferOutcome
from bucket_sync.smart_sync.multipart import build_transfer_config, part_threshold
from bucket_sync.smart_sync.progress import OnProgress, ProgressTracker
from bucket_sync.smart_sync.store import S3Store, translate_client_error

log = get_logger(__name__)


class TransferExecutor:
    """Moves data between the local filesystem and one bucket."""

    def __init__(self, store: S3Store, cancel_event: Optional[threading.Event] = None):
        self.store = store
        self.cancel_event = cancel_event

    def upload(self, local: LocalFile, key: str, on_progress: Optional[OnProgress] = None) -> TransferOutcome:
        """Upload ``local`` to ``key``.

        Returns TRANSFERRED, or FAILED if the user cancelled. Store and
        network failures raise TransferError. Multipart uploads are tagged
        with the content MD5 afterwards; failing to hash or tag only logs.
        """
        part_size = part_threshold(local.size)
        tracker = ProgressTracker(local.size, on_progress, cancel_event=self.cancel_event)

        try:
            self.store.upload_file(local.path, key, tracker, build_transfer_config(part_size))
        except (TransferCancelledError, KeyboardInterrupt):
            log.warning("Upload of %s cancelled", local.path)
            return TransferOutcome.FAILED
        except ClientError as e:
            raise translate_client_error(e, f"s3://{self.store.bucket}/{key}") from e
        except (Boto3Error, BotoCoreError, OSError) as e:
            raise TransferError(f"Upload of {local.path} to s3://{self.store.bucket}/{key} failed: {e}") from e
        tracker.finish()

        if part_size is not None:
            try:
                self.store.write_fingerprint_tag(key, local.fingerprint)
            except (TagWriteError, NotFoundError, ReadError) as e:
                log.warning("%s; the next sync will re-upload it", e)

        return TransferOutcome.TRANSFERRED

    def download(
        self,
        key: str,
        destination: Path,
        total: int,
        on_progress: Optional[OnProgress] = None,
    ) -> TransferOutcome:
        """Download ``key`` to ``destination``, creating parent directories.

        Returns TRANSFERRED, or FAILED if the user cancelled (the local file
        may then be incomplete). Store and network failures raise TransferError.
        """
        tracker = ProgressTracker(total, on_progress, cancel_event=self.cancel_event)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            self.store.download_file(key, destination, tracker)
        except (TransferCancelledError, KeyboardInterrupt):
            log.warning("Download of %s cancelled; %s may be incomplete", key, destination)
            return TransferOutcome.FAILED
        except (ClientError, Boto3Error, BotoCoreError, OSError) as e:
            raise TransferError(f"Download of s3://{self.store.bucket}/{key} failed: {e}") from e
        tracker.finish()

        return TransferOutcome.TRANSFERRED
