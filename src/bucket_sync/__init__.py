"""bucket-sync - Idempotent synchronization of local files with an S3 bucket."""

__version__ = "0.1.0"

from bucket_sync.config import Config
from bucket_sync.smart_sync import BucketSync

__all__ = ["BucketSync", "Config", "__version__"]
