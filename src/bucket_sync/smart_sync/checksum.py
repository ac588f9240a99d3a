"""Content fingerprints for local files and remote ETags."""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from bucket_sync.exceptions import NotFoundError, ReadError

# "<hex>-<partcount>", the ETag shape S3 gives objects uploaded in parts.
_MULTIPART_ETAG = re.compile(r"^([0-9a-fA-F]+)-(\d+)$")


@dataclass(frozen=True)
class SinglePartFingerprint:
    """ETag of an object uploaded in one request: the MD5 of its content."""

    hash: str

    @property
    def is_multipart(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.hash


@dataclass(frozen=True)
class MultipartFingerprint:
    """ETag of an object uploaded in parts. Not a hash of the content."""

    hash: str
    part_count: int

    @property
    def is_multipart(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{self.hash}-{self.part_count}"


Fingerprint = Union[SinglePartFingerprint, MultipartFingerprint]


def parse_etag(etag: str) -> Fingerprint:
    """Parse a store ETag into a fingerprint variant.

    Surrounding quotes, as returned by S3, are stripped.
    """
    value = (etag or "").strip().strip('"')
    match = _MULTIPART_ETAG.match(value)
    if match:
        return MultipartFingerprint(hash=match.group(1).lower(), part_count=int(match.group(2)))
    return SinglePartFingerprint(hash=value.lower())


class ChecksumCalculator:
    """Calculates file checksums in fixed-size chunks."""

    def __init__(self, chunk_size: int = 8192):
        self.chunk_size = chunk_size

    def calculate_md5(self, file_path: Path) -> str:
        """Return the hex MD5 of a file, the algorithm S3 uses for single-part ETags.

        Raises:
            NotFoundError: the path does not exist
            ReadError: the file could not be read
        """
        path = Path(file_path)
        md5_hash = hashlib.md5()
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(self.chunk_size), b""):
                    md5_hash.update(chunk)
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}") from e
        except OSError as e:
            raise ReadError(f"Cannot read {path}: {e.strerror or e}") from e
        return md5_hash.hexdigest()


_default_calculator = ChecksumCalculator()


def fingerprint(path: Union[str, Path]) -> str:
    """Content fingerprint of a local file, comparable to a single-part ETag."""
    return _default_calculator.calculate_md5(Path(path))
