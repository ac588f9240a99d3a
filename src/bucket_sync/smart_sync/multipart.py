"""Multipart upload policy."""

from typing import Optional

from boto3.s3.transfer import TransferConfig

MiB = 1024 * 1024

# Smallest part S3 accepts (except the last one); files below it go in one request.
MIN_MULTIPART_SIZE = 5 * MiB
MAX_PART_SIZE = 5 * 1024 * MiB
TARGET_PART_COUNT = 10


def part_threshold(file_size: int) -> Optional[int]:
    """Return the part size for a file, or None if it is sent in one request.

    The part size grows with the file (about a tenth of it, rounded up to
    whole MiB) and is clamped to what the store accepts, so it never
    decreases as the file grows.
    """
    if file_size < MIN_MULTIPART_SIZE:
        return None

    part_size = -(-file_size // TARGET_PART_COUNT)
    part_size = -(-part_size // MiB) * MiB
    return min(max(part_size, MIN_MULTIPART_SIZE), MAX_PART_SIZE)


def build_transfer_config(part_size: Optional[int]) -> TransferConfig:
    """TransferConfig that makes boto3 split exactly when part_threshold says so."""
    return TransferConfig(
        multipart_threshold=MIN_MULTIPART_SIZE,
        multipart_chunksize=part_size or MIN_MULTIPART_SIZE,
    )
