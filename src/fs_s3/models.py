"""File identity model shared by every backend.

A file is addressed either by a local path (``LocalFile``) or by a bucket and
key in object storage (``S3File``). The presence of a bucket is the only thing
that tells the two apart, so ``AnyFile`` is a closed union of exactly these two
types. Scanned variants carry the identity metadata collected when the file was
last observed and go stale as soon as the underlying storage changes.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, TypeAlias


class FileKind(str, Enum):
    """Which backend a file reference belongs to."""

    LOCAL = "local"
    S3 = "s3"


@dataclass(frozen=True)
class LocalFile:
    """A file or folder on the local filesystem."""

    key: str


@dataclass(frozen=True)
class S3File:
    """An object or prefix in an S3 bucket."""

    bucket: str
    key: str


@dataclass(frozen=True)
class ScannedLocalFile(LocalFile):
    """A local file known to exist, with its identity metadata."""

    md5: str
    size: int
    mime_type: str | None


@dataclass(frozen=True)
class ScannedS3File(S3File):
    """An S3 object known to exist, with its identity metadata."""

    md5: str
    size: int
    mime_type: str | None


AnyFile: TypeAlias = LocalFile | S3File
ScannedFile: TypeAlias = ScannedLocalFile | ScannedS3File
FileContent: TypeAlias = bytes | str | BinaryIO


def file_ref(key: str, bucket: str | None = None) -> AnyFile:
    """Build a file reference, remote when a bucket is given."""
    if bucket:
        return S3File(bucket=bucket, key=key)
    return LocalFile(key=key)


@dataclass(frozen=True)
class UploadProgress:
    """Progress of a managed upload.

    ``loaded`` is cumulative and never decreases between events for the same
    upload. ``total`` is None when the body size is not known up front.
    """

    key: str
    loaded: int
    total: int | None = None


ProgressListener: TypeAlias = Callable[[UploadProgress], None]


@dataclass(frozen=True)
class WriteOptions:
    """Options applied to writes and copies.

    Attributes:
        overwrite: Replace an existing destination. When False an existing
            destination raises DestinationExistsError.
        skip_same: Do nothing when the destination already holds the same
            content (compared by MD5). Checked before ``overwrite``.
        progress_listener: Called with UploadProgress events for S3 uploads
        make_public: Give uploaded/copied S3 objects a public-read ACL
        s3_params: Extra arguments passed through to S3 uploads and copies
    """

    overwrite: bool = False
    skip_same: bool = False
    progress_listener: ProgressListener | None = None
    make_public: bool = False
    s3_params: dict[str, Any] | None = None


CopyOptions: TypeAlias = WriteOptions


@dataclass(frozen=True)
class WriteRequest:
    """Content to write and where to write it."""

    destination: AnyFile
    body: FileContent


@dataclass(frozen=True)
class CopyRequest:
    """Copy a file, or every file under a folder, to a destination."""

    source: AnyFile
    destination: AnyFile


@dataclass(frozen=True)
class CopyOperation:
    """A single file copy. The source came from a scan or a listing."""

    source: ScannedFile
    destination: AnyFile
