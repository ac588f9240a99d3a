"""Smart sync engine: idempotent transfers between a directory and a bucket."""

import os
import threading
from enum import Enum
from itertools import islice
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import boto3
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from bucket_sync.config import Config
from bucket_sync.exceptions import BucketSyncError, KeyMappingError, NotFoundError
from bucket_sync.logger import get_logger
from bucket_sync.smart_sync.decision import decide_download, decide_upload, verify_entry
from bucket_sync.smart_sync.display import size_human_readable
from bucket_sync.smart_sync.models import (
    DeleteOutcome,
    ListEntry,
    LocalFile,
    RemoteObject,
    TransferOutcome,
    Verification,
)
from bucket_sync.smart_sync.patterns import local_glob, matches
from bucket_sync.smart_sync.progress import RichTransferDisplay
from bucket_sync.smart_sync.store import S3Store
from bucket_sync.smart_sync.transfer import TransferExecutor

log = get_logger(__name__)


class ConfirmResponse(str, Enum):
    YES = "yes"
    NO = "no"
    STOP_ALL = "stop-all"


Confirm = Callable[[str], ConfirmResponse]

_ANSWERS = {
    "y": ConfirmResponse.YES,
    "n": ConfirmResponse.NO,
    "q": ConfirmResponse.STOP_ALL,
}


def prompt_confirm(prompt: str, console: Optional[Console] = None) -> ConfirmResponse:
    """Ask on the terminal: y = yes, n = no, q = no to this and all remaining."""
    answer = Prompt.ask(escape(prompt), choices=list(_ANSWERS), default="n", console=console)
    return _ANSWERS[answer]


class RemoteMetadataCache:
    """Snapshot of the most recent listing.

    Replaced as a whole by each list call and never modified by transfers.
    """

    def __init__(self):
        self._entries: Tuple[ListEntry, ...] = ()
        self._populated = False

    def replace(self, entries: List[ListEntry]) -> None:
        self._entries = tuple(entries)
        self._populated = True

    @property
    def entries(self) -> Tuple[ListEntry, ...]:
        return self._entries

    @property
    def populated(self) -> bool:
        return self._populated

    def __len__(self) -> int:
        return len(self._entries)


class BucketSync:
    """Sync session bound to one bucket.

    Owns the S3 client, the listing cache and the confirmation capability.
    Items are processed one at a time; a failure on one item never stops
    the others.
    """

    def __init__(
        self,
        config: Config,
        console: Optional[Console] = None,
        confirm: Optional[Confirm] = None,
        base_dir: Optional[Path] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.console = console or Console()
        self.confirm = confirm or (lambda prompt: prompt_confirm(prompt, self.console))
        self.base_dir = Path(base_dir).resolve() if base_dir else Path.cwd().resolve()
        self.cancel_event = cancel_event
        self.cache = RemoteMetadataCache()
        self.display = RichTransferDisplay(self.console)

        # AWS clients will be created lazily to use current config
        self._s3_client = None
        self._store: Optional[S3Store] = None
        self._bucket_error: Optional[BucketSyncError] = None
        self._bucket_checked = False

    @property
    def s3_client(self):
        """Get S3 client, creating it lazily with current config."""
        if self._s3_client is None:
            session = boto3.Session(**self.config.get_aws_session_kwargs())
            self._s3_client = session.client("s3", **self.config.get_s3_client_kwargs())
        return self._s3_client

    def _reset_aws_clients(self) -> None:
        """Reset AWS clients to pick up config changes."""
        self._s3_client = None
        self._store = None
        self._bucket_checked = False
        self._bucket_error = None

    @property
    def bucket_error(self) -> Optional[BucketSyncError]:
        """Why the bucket is unusable, if selection failed."""
        return self._bucket_error

    def select_bucket(self, bucket_name: Optional[str] = None) -> bool:
        """Check that the bucket exists and is reachable, and bind to it.

        Failures are reported here, once. Later operations refuse to run
        without repeating the message.
        """
        name = bucket_name or self.config.s3.bucket_name
        self.config.s3.bucket_name = name
        self._bucket_checked = True
        self._store = None
        self._bucket_error = None

        if not name:
            self._bucket_error = NotFoundError("No bucket configured")
            self.console.print("[red]No bucket configured. Use --bucket or set it with 'config init'[/red]")
            return False

        store = S3Store(self.s3_client, name)
        try:
            store.check_bucket()
        except BucketSyncError as e:
            self._bucket_error = e
            self.console.print(f"[red]{e}[/red]")
            return False

        log.debug("Using bucket %s", name)
        self._store = store
        return True

    def _require_store(self) -> Optional[S3Store]:
        if not self._bucket_checked:
            self.select_bucket()
        if self._store is None:
            log.debug("Bucket unavailable, skipping operation: %s", self._bucket_error)
        return self._store

    def key_for(self, path: Path) -> str:
        """Object key for a local path: relative to base_dir, under the prefix."""
        full_path = Path(path).resolve()
        relative = os.path.relpath(full_path, self.base_dir)
        if _is_outside(relative):
            relative = full_path.name
        return self._prefix() + Path(relative).as_posix()

    def path_for(self, key: str) -> Path:
        """Local path for an object key, mirroring key_for.

        Raises KeyMappingError for folder markers and for keys that would
        resolve outside base_dir.
        """
        if _is_folder_marker(key):
            raise KeyMappingError(f"{key} is a folder marker, not a file")
        prefix = self._prefix()
        relative = key[len(prefix):] if prefix and key.startswith(prefix) else key
        path = (self.base_dir / Path(*relative.split("/"))).resolve()
        if self.base_dir not in path.parents:
            raise KeyMappingError(f"{key} would be written outside {self.base_dir}")
        return path

    def _prefix(self) -> str:
        prefix = self.config.s3.prefix.strip("/")
        return f"{prefix}/" if prefix else ""

    def _local_file(self, path: Path) -> Optional[LocalFile]:
        try:
            return LocalFile.from_path(path)
        except NotFoundError:
            return None

    def _local_file_for_key(self, key: str) -> Optional[LocalFile]:
        try:
            return self._local_file(self.path_for(key))
        except KeyMappingError:
            return None

    def list(self, pattern: Optional[str] = None, max_objects: Optional[int] = None, verify: bool = False) -> List[ListEntry]:
        """List up to ``max_objects`` objects whose key matches ``pattern``.

        ``max_objects`` defaults to the configured cap (100). Folder markers
        (keys ending in "/") are not listed.

        With ``verify`` each entry is compared against the local file it maps
        to. The result replaces the listing cache used by download_last_listed.
        """
        store = self._require_store()
        if store is None:
            return []

        if max_objects is None:
            max_objects = self.config.s3.max_objects
        try:
            selected = list(islice(
                (
                    obj for obj in store.iter_objects(self._prefix())
                    if not _is_folder_marker(obj.key) and matches(obj.key, pattern)
                ),
                max(0, max_objects),
            ))
        except BucketSyncError as e:
            self.console.print(f"[red]Couldn't list objects in bucket {store.bucket}: {e}[/red]")
            return []

        entries = []
        for remote in selected:
            verification = Verification.NOT_CHECKED
            if verify:
                local = self._local_file_for_key(remote.key)
                verification = verify_entry(remote, local, self._read_tag)
            entries.append(ListEntry(remote=remote, verification=verification))

        self.cache.replace(entries)
        return entries

    def _read_tag(self, remote: RemoteObject) -> Optional[str]:
        return self._store.read_fingerprint_tag(remote.key)

    def upload(
        self,
        path: Union[str, Path],
        dry_run: bool = False,
        no_overwrite: bool = True,
        force: bool = False,
    ) -> TransferOutcome:
        """Upload one file if the decision says it is needed."""
        store = self._require_store()
        if store is None:
            return TransferOutcome.FAILED

        try:
            local = LocalFile.from_path(self.base_dir / Path(path))
            key = self.key_for(local.path)
            remote = store.head(key)
            decision = decide_upload(local, remote, no_overwrite=no_overwrite, force=force, read_tag=self._read_tag)

            if not decision.needs_transfer:
                outcome = decision.skip_outcome()
                if outcome is TransferOutcome.SKIPPED_EXISTS:
                    self.console.print(f"[yellow]{path} is already uploaded and no-overwrite is set[/yellow]")
                else:
                    self.console.print(f"[green]{path} is up to date[/green]")
                return outcome

            target = f"{store.bucket}:{key}"
            if dry_run:
                self.console.print(f"Would upload {path} to {target} ({decision.reason}, {size_human_readable(local.size)})")
                return TransferOutcome.DRY_RUN_WOULD_TRANSFER

            self.console.print(f"Uploading {path} to {target} ({decision.reason})...")
            with self.display.track(f"Uploading {local.path.name}", local.size) as on_progress:
                executor = TransferExecutor(store, cancel_event=self.cancel_event)
                outcome = executor.upload(local, key, on_progress=on_progress)
        except BucketSyncError as e:
            self.console.print(f"[red]Couldn't upload {path}: {e}[/red]")
            return TransferOutcome.FAILED

        if outcome is TransferOutcome.TRANSFERRED:
            self.console.print(f"[green]Successfully uploaded {path} to {target}[/green]")
        else:
            self.console.print(f"[red]Upload of {path} cancelled[/red]")
        return outcome

    def upload_many(
        self,
        pattern: str,
        dry_run: bool = False,
        no_overwrite: bool = True,
        force: bool = False,
        max_items: Optional[int] = None,
    ) -> List[TransferOutcome]:
        """Upload every local file matching ``pattern``."""
        if self._require_store() is None:
            return []

        paths = local_glob(pattern, self.base_dir)
        if max_items is not None:
            paths = paths[:max_items]
        if not paths:
            self.console.print(f"[yellow]No files match {pattern}[/yellow]")

        return [
            self.upload(self._display_path(path), dry_run=dry_run, no_overwrite=no_overwrite, force=force)
            for path in paths
        ]

    def _display_path(self, path: Path) -> str:
        relative = os.path.relpath(path, self.base_dir)
        return str(path) if _is_outside(relative) else relative

    def download(
        self,
        entry: ListEntry,
        dry_run: bool = False,
        no_overwrite: bool = True,
        force: bool = False,
    ) -> TransferOutcome:
        """Download one listed object if the decision says it is needed."""
        store = self._require_store()
        if store is None:
            return TransferOutcome.FAILED

        try:
            destination = self.path_for(entry.key)
            local = self._local_file(destination)
            decision = decide_download(local, entry, no_overwrite=no_overwrite, force=force)

            if not decision.needs_transfer:
                outcome = decision.skip_outcome()
                if outcome is TransferOutcome.SKIPPED_EXISTS:
                    self.console.print(f"[yellow]{destination} already exists and no-overwrite is set[/yellow]")
                else:
                    self.console.print(f"[green]{destination} is up to date[/green]")
                return outcome

            if dry_run:
                self.console.print(
                    f"Would download {store.bucket}:{entry.key} to {destination} "
                    f"({decision.reason}, {size_human_readable(entry.size)})"
                )
                return TransferOutcome.DRY_RUN_WOULD_TRANSFER

            self.console.print(f"Downloading {store.bucket}:{entry.key} to {destination} ({decision.reason})...")
            with self.display.track(f"Downloading {destination.name}", entry.size) as on_progress:
                executor = TransferExecutor(store, cancel_event=self.cancel_event)
                outcome = executor.download(entry.key, destination, entry.size, on_progress=on_progress)
        except BucketSyncError as e:
            self.console.print(f"[red]Couldn't download {entry.key}: {e}[/red]")
            return TransferOutcome.FAILED

        if outcome is TransferOutcome.TRANSFERRED:
            self.console.print(f"[green]Successfully downloaded {entry.key}[/green]")
        else:
            self.console.print(f"[red]Download of {entry.key} cancelled[/red]")
        return outcome

    def download_last_listed(
        self,
        dry_run: bool = False,
        no_overwrite: bool = True,
        force: bool = False,
    ) -> List[TransferOutcome]:
        """Download every entry of the most recent listing."""
        if self._require_store() is None:
            return []
        if not self.cache.populated:
            self.console.print("[yellow]Nothing to download. Run 'list' with a pattern first[/yellow]")
            return []

        return [
            self.download(entry, dry_run=dry_run, no_overwrite=no_overwrite, force=force)
            for entry in self.cache.entries
        ]

    def delete(self, key: str, dry_run: bool = True) -> DeleteOutcome:
        """Delete one object after confirmation."""
        store = self._require_store()
        if store is None:
            return DeleteOutcome.FAILED
        outcome, _ = self._confirm_and_delete(store, key, dry_run)
        return outcome

    def delete_many(self, pattern: Optional[str], dry_run: bool = True, max_items: Optional[int] = None) -> List[DeleteOutcome]:
        """Delete matching objects, confirming each one.

        Answering "stop" leaves the current and every remaining object
        untouched without further prompts.
        """
        store = self._require_store()
        if store is None:
            return []

        try:
            keys = [obj.key for obj in store.iter_objects(self._prefix()) if matches(obj.key, pattern)]
        except BucketSyncError as e:
            self.console.print(f"[red]Couldn't list objects in bucket {store.bucket}: {e}[/red]")
            return []
        if max_items is not None:
            keys = keys[:max_items]

        outcomes: List[DeleteOutcome] = []
        for index, key in enumerate(keys):
            outcome, stop = self._confirm_and_delete(store, key, dry_run)
            outcomes.append(outcome)
            if stop:
                remaining = len(keys) - index - 1
                outcomes.extend([DeleteOutcome.ABORTED] * remaining)
                break
        return outcomes

    def _confirm_and_delete(self, store: S3Store, key: str, dry_run: bool) -> Tuple[DeleteOutcome, bool]:
        response = self.confirm(f"Are you sure you want to delete {key}?")

        if response is ConfirmResponse.STOP_ALL:
            self.console.print(f"{key} was not deleted. Skipping remaining objects")
            return DeleteOutcome.ABORTED, True
        if response is not ConfirmResponse.YES:
            self.console.print(f"{key} was not deleted.")
            return DeleteOutcome.DECLINED, False
        if dry_run:
            self.console.print(f"{key} would be deleted (dry run)")
            return DeleteOutcome.DRY_RUN_WOULD_DELETE, False

        try:
            store.delete(key)
        except BucketSyncError as e:
            self.console.print(f"[red]Couldn't delete {key}: {e}[/red]")
            return DeleteOutcome.FAILED, False
        self.console.print(f"[green]{key} has been deleted.[/green]")
        return DeleteOutcome.DELETED, False


def _is_outside(relative: str) -> bool:
    """True if a relpath result climbs out of its start directory."""
    return relative == os.pardir or relative.startswith(os.pardir + os.sep)


def _is_folder_marker(key: str) -> bool:
    """Zero-content "directory" objects such as those the S3 console creates."""
    return key.endswith("/")
