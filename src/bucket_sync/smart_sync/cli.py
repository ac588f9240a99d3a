"""Command-line interface for bucket-sync."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console

from bucket_sync import __version__
from bucket_sync.config import Config, parse_flag
from bucket_sync.config_manager import get_config_path, load_config, save_config
from bucket_sync.logger import setup_logging
from bucket_sync.smart_sync.display import render_listing, summarize
from bucket_sync.smart_sync.models import DeleteOutcome, TransferOutcome
from bucket_sync.smart_sync.sync_engine import BucketSync

app = typer.Typer(
    name="bucket-sync",
    help="Idempotent synchronization of local files with an S3 bucket",
    add_completion=False,
)
config_app = typer.Typer(help="Manage the user configuration file")
app.add_typer(config_app, name="config")
console = Console()

# Keys accepted in ~/.bucket-sync/config.yaml
CONFIG_KEYS = ("profile", "bucket", "region", "prefix", "endpoint_url", "max_objects", "no_overwrite", "verify")


class Messages:
    CONFIG_LOAD_ERROR = "Error loading configuration: {error}"
    BUCKET_NOT_CONFIGURED = "Error: S3 bucket not configured. Use --bucket or run 'bucket-sync config init'"
    CONFIG_SAVED = "Configuration saved to {path}"
    CONFIG_MISSING = "No configuration file at {path}"
    ITEMS_FAILED = "{count} item(s) failed"


# Common message helpers
def error_msg(message: str) -> str:
    """Format error message with consistent styling."""
    return f"[red]{message}[/red]"


def success_msg(message: str) -> str:
    """Format success message with consistent styling."""
    return f"[green]{message}[/green]"


def _load_and_configure(
    profile: Optional[str],
    bucket: Optional[str],
    region: Optional[str],
    prefix: Optional[str] = None,
    verbose: bool = False,
) -> Config:
    """Load configuration: command-line flags > config file > environment."""
    try:
        config = Config.from_env()
        user_config = load_config(get_config_path(config.config_dir)) or {}
        _apply_user_config(config, user_config)
    except (yaml.YAMLError, OSError, ValueError, TypeError, AttributeError) as e:
        console.print(error_msg(Messages.CONFIG_LOAD_ERROR.format(error=e)))
        raise typer.Exit(1)

    config.aws.profile = profile or config.aws.profile
    config.aws.region = region or config.aws.region
    config.s3.bucket_name = bucket or config.s3.bucket_name
    if prefix is not None:
        config.s3.prefix = prefix
    config.verbose = verbose or config.verbose
    return config


def _as_flag(value) -> bool:
    return value if isinstance(value, bool) else parse_flag(str(value))


def _apply_user_config(config: Config, user_config: Dict[str, Any]) -> None:
    """Overlay config file values on the environment-derived configuration."""
    config.aws.profile = user_config.get("profile") or config.aws.profile
    config.aws.region = user_config.get("region") or config.aws.region
    config.aws.endpoint_url = user_config.get("endpoint_url") or config.aws.endpoint_url
    config.s3.bucket_name = user_config.get("bucket") or config.s3.bucket_name
    config.s3.prefix = user_config.get("prefix") or config.s3.prefix
    if user_config.get("max_objects") is not None:
        config.s3.max_objects = int(user_config["max_objects"])
    if user_config.get("no_overwrite") is not None:
        config.sync.no_overwrite = _as_flag(user_config["no_overwrite"])
    if user_config.get("verify") is not None:
        config.sync.verify = _as_flag(user_config["verify"])


def _no_overwrite(config: Config, overwrite: Optional[bool]) -> bool:
    """--overwrite/--no-overwrite if given, else the configured policy."""
    return config.sync.no_overwrite if overwrite is None else not overwrite


def _config_path() -> Path:
    """Config file location, honouring BUCKET_SYNC_CONFIG_DIR."""
    try:
        return get_config_path(Config.from_env().config_dir)
    except ValueError as e:
        console.print(error_msg(Messages.CONFIG_LOAD_ERROR.format(error=e)))
        raise typer.Exit(1)


def _validate_configuration(config: Config) -> None:
    """Validate required configuration settings."""
    if not config.s3.bucket_name:
        console.print(error_msg(Messages.BUCKET_NOT_CONFIGURED))
        raise typer.Exit(1)


def _initialize_sync_engine(config: Config, base_dir: Optional[Path]) -> BucketSync:
    """Create the sync engine and select the bucket; exit if it is unusable."""
    setup_logging(verbose=config.verbose)
    sync_engine = BucketSync(config, console=console, base_dir=base_dir)
    if not sync_engine.select_bucket():
        raise typer.Exit(1)
    if config.aws.region:
        console.print(f"[bright_black]Using AWS region: {config.aws.region}[/bright_black]")
    return sync_engine


def _engine(
    bucket: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    prefix: Optional[str],
    base_dir: Optional[Path],
    verbose: bool,
) -> BucketSync:
    config = _load_and_configure(profile, bucket, region, prefix, verbose)
    _validate_configuration(config)
    return _initialize_sync_engine(config, base_dir)


def _finish(outcomes: List[str], failed: int) -> None:
    """Print a summary and exit non-zero if any item failed."""
    console.print(summarize(outcomes))
    if failed:
        console.print(error_msg(Messages.ITEMS_FAILED.format(count=failed)))
        raise typer.Exit(1)


def _transfer_summary(outcomes: List[TransferOutcome]) -> None:
    _finish([o.value for o in outcomes], sum(o is TransferOutcome.FAILED for o in outcomes))


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"bucket-sync {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """bucket-sync: upload, download, list and delete objects without redundant transfers."""


# Shared options
BUCKET_OPTION = typer.Option(None, "--bucket", "-b", help="S3 bucket name")
REGION_OPTION = typer.Option(None, "--region", "-r", help="AWS region (default: AWS_REGION or ~/.aws/config)")
PROFILE_OPTION = typer.Option(None, "--profile", help="AWS profile")
PREFIX_OPTION = typer.Option(None, "--prefix", help="Key prefix inside the bucket")
BASE_DIR_OPTION = typer.Option(None, "--base-dir", help="Local directory keys are relative to (default: current directory)")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")
MAX_OPTION = typer.Option(None, "--max", "-n", help="Maximum number of objects")


@app.command("list")
def list_objects(
    pattern: Optional[str] = typer.Argument(None, help="Glob pattern to filter object keys"),
    max_objects: Optional[int] = typer.Option(
        None, "--max", "-n", help="Maximum number of objects to list (default: 100)"
    ),
    verify: Optional[bool] = typer.Option(None, "--verify/--no-verify", help="Compare each object with the local file"),
    bucket: Optional[str] = BUCKET_OPTION,
    region: Optional[str] = REGION_OPTION,
    profile: Optional[str] = PROFILE_OPTION,
    prefix: Optional[str] = PREFIX_OPTION,
    base_dir: Optional[Path] = BASE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List objects in the bucket."""
    sync_engine = _engine(bucket, region, profile, prefix, base_dir, verbose)
    if verify is None:
        verify = sync_engine.config.sync.verify
    entries = sync_engine.list(pattern, max_objects=max_objects, verify=verify)
    render_listing(console, entries)


@app.command()
def upload(
    path: str = typer.Argument(..., help="File to upload"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be uploaded without uploading"),
    overwrite: Optional[bool] = typer.Option(
        None, "--overwrite/--no-overwrite", help="Replace remote objects whose content differs (default: never)"
    ),
    force: bool = typer.Option(False, "--force", help="Upload even if the remote object is identical"),
    bucket: Optional[str] = BUCKET_OPTION,
    region: Optional[str] = REGION_OPTION,
    profile: Optional[str] = PROFILE_OPTION,
    prefix: Optional[str] = PREFIX_OPTION,
    base_dir: Optional[Path] = BASE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Upload a file to the bucket."""
    sync_engine = _engine(bucket, region, profile, prefix, base_dir, verbose)
    no_overwrite = _no_overwrite(sync_engine.config, overwrite)
    outcome = sync_engine.upload(path, dry_run=dry_run, no_overwrite=no_overwrite, force=force)
    _transfer_summary([outcome])


@app.command("upload-many")
def upload_many(
    pattern: str = typer.Argument(..., help="Glob pattern of local files, e.g. 'data/**/*.{csv,json}'"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be uploaded without uploading"),
    overwrite: Optional[bool] = typer.Option(
        None, "--overwrite/--no-overwrite", help="Replace remote objects whose content differs (default: never)"
    ),
    force: bool = typer.Option(False, "--force", help="Upload even if the remote object is identical"),
    max_items: Optional[int] = MAX_OPTION,
    bucket: Optional[str] = BUCKET_OPTION,
    region: Optional[str] = REGION_OPTION,
    profile: Optional[str] = PROFILE_OPTION,
    prefix: Optional[str] = PREFIX_OPTION,
    base_dir: Optional[Path] = BASE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Upload every local file matching a glob pattern."""
    sync_engine = _engine(bucket, region, profile, prefix, base_dir, verbose)
    outcomes = sync_engine.upload_many(
        pattern,
        dry_run=dry_run,
        no_overwrite=_no_overwrite(sync_engine.config, overwrite),
        force=force,
        max_items=max_items,
    )
    _transfer_summary(outcomes)


@app.command()
def download(
    pattern: Optional[str] = typer.Argument(None, help="Glob pattern to filter object keys"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be downloaded without downloading"),
    overwrite: Optional[bool] = typer.Option(
        None, "--overwrite/--no-overwrite", help="Replace local files whose content differs (default: never)"
    ),
    force: bool = typer.Option(False, "--force", help="Download even if the local file is identical"),
    max_objects: Optional[int] = typer.Option(
        None, "--max", "-n", help="Maximum number of objects to download (default: 100)"
    ),
    bucket: Optional[str] = BUCKET_OPTION,
    region: Optional[str] = REGION_OPTION,
    profile: Optional[str] = PROFILE_OPTION,
    prefix: Optional[str] = PREFIX_OPTION,
    base_dir: Optional[Path] = BASE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List matching objects, then download those that differ locally."""
    sync_engine = _engine(bucket, region, profile, prefix, base_dir, verbose)
    no_overwrite = _no_overwrite(sync_engine.config, overwrite)
    entries = sync_engine.list(pattern, max_objects=max_objects, verify=not no_overwrite and not force)
    render_listing(console, entries)
    outcomes = sync_engine.download_last_listed(dry_run=dry_run, no_overwrite=no_overwrite, force=force)
    _transfer_summary(outcomes)


@app.command()
def delete(
    key: str = typer.Argument(..., help="Object key to delete"),
    dry_run: bool = typer.Option(True, "--dry-run/--no-dry-run", help="Only report what would be deleted"),
    bucket: Optional[str] = BUCKET_OPTION,
    region: Optional[str] = REGION_OPTION,
    profile: Optional[str] = PROFILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Delete an object from the bucket, after confirmation."""
    sync_engine = _engine(bucket, region, profile, None, None, verbose)
    outcome = sync_engine.delete(key, dry_run=dry_run)
    _finish([outcome.value], int(outcome is DeleteOutcome.FAILED))


@app.command("delete-many")
def delete_many(
    pattern: str = typer.Argument(..., help="Glob pattern of object keys to delete"),
    dry_run: bool = typer.Option(True, "--dry-run/--no-dry-run", help="Only report what would be deleted"),
    max_items: Optional[int] = MAX_OPTION,
    bucket: Optional[str] = BUCKET_OPTION,
    region: Optional[str] = REGION_OPTION,
    profile: Optional[str] = PROFILE_OPTION,
    prefix: Optional[str] = PREFIX_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Delete objects matching a glob pattern, confirming each one (y/n/q)."""
    sync_engine = _engine(bucket, region, profile, prefix, None, verbose)
    outcomes = sync_engine.delete_many(pattern, dry_run=dry_run, max_items=max_items)
    _finish([o.value for o in outcomes], sum(o is DeleteOutcome.FAILED for o in outcomes))


@config_app.command("init")
def config_init(
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="Default S3 bucket"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="Default AWS region"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Default AWS profile"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Default key prefix"),
    endpoint_url: Optional[str] = typer.Option(None, "--endpoint-url", help="Custom S3 endpoint"),
    max_objects: Optional[int] = typer.Option(None, "--max-objects", help="Default listing cap"),
    overwrite: Optional[bool] = typer.Option(
        None, "--overwrite/--no-overwrite", help="Replace differing files and objects by default"
    ),
    verify: Optional[bool] = typer.Option(None, "--verify/--no-verify", help="Verify listings by default"),
) -> None:
    """Save default settings to the user configuration file."""
    path = _config_path()
    try:
        existing = load_config(path) or {}
    except yaml.YAMLError as e:
        console.print(error_msg(Messages.CONFIG_LOAD_ERROR.format(error=e)))
        raise typer.Exit(1)

    values = {
        "bucket": bucket,
        "region": region,
        "profile": profile,
        "prefix": prefix,
        "endpoint_url": endpoint_url,
        "max_objects": max_objects,
        "no_overwrite": None if overwrite is None else not overwrite,
        "verify": verify,
    }
    existing.update({k: v for k, v in values.items() if v is not None})
    save_config(path, existing)
    console.print(success_msg(Messages.CONFIG_SAVED.format(path=path)))


@config_app.command("show")
def config_show() -> None:
    """Show the user configuration file."""
    path = _config_path()
    try:
        user_config = load_config(path)
    except yaml.YAMLError as e:
        console.print(error_msg(Messages.CONFIG_LOAD_ERROR.format(error=e)))
        raise typer.Exit(1)

    if user_config is None:
        console.print(Messages.CONFIG_MISSING.format(path=path))
        return
    for key in CONFIG_KEYS:
        if key in user_config:
            console.print(f"{key}: {user_config[key]}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
