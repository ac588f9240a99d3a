"""Thin adapter over a boto3 S3 client for one bucket.

Translates botocore errors into the bucket-sync exception taxonomy and
store responses into RemoteObject values.
"""

from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from bucket_sync.exceptions import (
    AccessDeniedError,
    BucketSyncError,
    NotFoundError,
    RegionMismatchError,
    TagWriteError,
    TransferError,
)
from bucket_sync.logger import get_logger
from bucket_sync.smart_sync.models import MULTIPART_TAG_KEY, RemoteObject

log = get_logger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}
ACCESS_DENIED_CODES = {"403", "AccessDenied", "Forbidden"}
REDIRECT_CODES = {"301", "PermanentRedirect"}


def error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", "Unknown"))


def translate_client_error(error: ClientError, subject: str) -> BucketSyncError:
    """Map a botocore ClientError onto the bucket-sync taxonomy."""
    code = error_code(error)
    if code in NOT_FOUND_CODES:
        return NotFoundError(f"{subject} does not exist")
    if code in ACCESS_DENIED_CODES:
        return AccessDeniedError(f"Access denied to {subject}")
    if code in REDIRECT_CODES:
        headers = error.response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
        region = headers.get("x-amz-bucket-region") or error.response.get("Error", {}).get("Region")
        return RegionMismatchError(
            f"{subject} is not in the configured region (bucket region: {region or 'unknown'})",
            region=region,
        )
    return TransferError(f"{subject}: {code} - {error}")


class S3Store:
    """Object-store operations the sync engine relies on, bound to one bucket."""

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    def check_bucket(self) -> None:
        """Raise NotFoundError, AccessDeniedError or RegionMismatchError if unusable."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            raise translate_client_error(e, f"Bucket '{self.bucket}'") from e
        except BotoCoreError as e:
            raise TransferError(f"Cannot reach bucket '{self.bucket}': {e}") from e

    def head(self, key: str) -> Optional[RemoteObject]:
        """Return the object's metadata, or None if it does not exist."""
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            translated = translate_client_error(e, f"s3://{self.bucket}/{key}")
            if isinstance(translated, NotFoundError):
                log.debug("No object at s3://%s/%s", self.bucket, key)
                return None
            raise translated from e
        except BotoCoreError as e:
            raise TransferError(f"Cannot look up s3://{self.bucket}/{key}: {e}") from e
        return RemoteObject.from_head(key, response)

    def iter_objects(self, prefix: str = "") -> Iterator[RemoteObject]:
        """Yield every object in the bucket (under ``prefix``), in key order."""
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    yield RemoteObject.from_listing(item)
        except ClientError as e:
            raise translate_client_error(e, f"Bucket '{self.bucket}'") from e
        except BotoCoreError as e:
            raise TransferError(f"Cannot list bucket '{self.bucket}': {e}") from e

    def read_fingerprint_tag(self, key: str) -> Optional[str]:
        """Return the MultipartETag tag of an object, or None if it has none."""
        try:
            response = self.client.get_object_tagging(Bucket=self.bucket, Key=key)
        except ClientError as e:
            raise translate_client_error(e, f"Tags of s3://{self.bucket}/{key}") from e
        except BotoCoreError as e:
            raise TransferError(f"Cannot read tags of s3://{self.bucket}/{key}: {e}") from e
        for tag in response.get("TagSet", []):
            if tag.get("Key") == MULTIPART_TAG_KEY:
                return tag.get("Value")
        return None

    def write_fingerprint_tag(self, key: str, value: str) -> None:
        """Set the MultipartETag tag, keeping any other tags on the object."""
        try:
            existing = self.client.get_object_tagging(Bucket=self.bucket, Key=key).get("TagSet", [])
            tag_set = [tag for tag in existing if tag.get("Key") != MULTIPART_TAG_KEY]
            tag_set.append({"Key": MULTIPART_TAG_KEY, "Value": value})
            self.client.put_object_tagging(Bucket=self.bucket, Key=key, Tagging={"TagSet": tag_set})
        except (ClientError, BotoCoreError) as e:
            raise TagWriteError(f"Could not tag s3://{self.bucket}/{key}: {e}") from e

    def upload_file(self, path: Path, key: str, callback: Callable[[int], None], config: Any) -> None:
        self.client.upload_file(
            Filename=str(path),
            Bucket=self.bucket,
            Key=key,
            Callback=callback,
            Config=config,
        )

    def download_file(self, key: str, path: Path, callback: Callable[[int], None]) -> None:
        self.client.download_file(
            Bucket=self.bucket,
            Key=key,
            Filename=str(path),
            Callback=callback,
        )

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            raise translate_client_error(e, f"s3://{self.bucket}/{key}") from e
        except BotoCoreError as e:
            raise TransferError(f"Cannot delete s3://{self.bucket}/{key}: {e}") from e
