"""Configuration for bucket-sync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

ENV_PREFIX = "BUCKET_SYNC_"


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value or None


def parse_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AWSConfig:
    """AWS credentials and endpoint settings."""

    profile: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None


@dataclass
class S3Config:
    """Target bucket settings."""

    bucket_name: Optional[str] = None
    prefix: str = ""
    max_objects: int = 100


@dataclass
class SyncConfig:
    """Default overwrite and verification policy."""

    no_overwrite: bool = True
    verify: bool = False


@dataclass
class Config:
    """Top-level configuration."""

    aws: AWSConfig = field(default_factory=AWSConfig)
    s3: S3Config = field(default_factory=S3Config)
    sync: SyncConfig = field(default_factory=SyncConfig)
    verbose: bool = False
    config_dir: Path = field(default_factory=lambda: Path.home() / ".bucket-sync")

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration from BUCKET_SYNC_* environment variables.

        Raises ValueError if BUCKET_SYNC_S3_MAX_OBJECTS is not an integer.
        """
        config = cls()
        config.aws.profile = _env("AWS_PROFILE")
        config.aws.region = _env("AWS_REGION")
        config.aws.access_key_id = _env("AWS_ACCESS_KEY_ID")
        config.aws.secret_access_key = _env("AWS_SECRET_ACCESS_KEY")
        config.aws.endpoint_url = _env("ENDPOINT_URL")
        config.s3.bucket_name = _env("S3_BUCKET")
        config.s3.prefix = _env("S3_PREFIX") or ""
        max_objects = _env("S3_MAX_OBJECTS")
        if max_objects is not None:
            config.s3.max_objects = int(max_objects)
        no_overwrite = _env("NO_OVERWRITE")
        if no_overwrite is not None:
            config.sync.no_overwrite = parse_flag(no_overwrite)
        verify = _env("VERIFY")
        if verify is not None:
            config.sync.verify = parse_flag(verify)
        config_dir = _env("CONFIG_DIR")
        if config_dir is not None:
            config.config_dir = Path(config_dir).expanduser()
        verbose = _env("VERBOSE")
        config.verbose = verbose is not None and parse_flag(verbose)
        return config

    def get_aws_session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for boto3.Session."""
        kwargs: Dict[str, Any] = {}
        if self.aws.profile:
            kwargs["profile_name"] = self.aws.profile
        if self.aws.region:
            kwargs["region_name"] = self.aws.region
        return kwargs

    def get_s3_client_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Session.client('s3', ...)."""
        kwargs: Dict[str, Any] = {}
        if self.aws.region:
            kwargs["region_name"] = self.aws.region
        if self.aws.access_key_id and self.aws.secret_access_key:
            kwargs["aws_access_key_id"] = self.aws.access_key_id
            kwargs["aws_secret_access_key"] = self.aws.secret_access_key
        if self.aws.endpoint_url:
            kwargs["endpoint_url"] = self.aws.endpoint_url
        return kwargs
