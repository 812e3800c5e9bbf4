"""Storage backends."""

from fs_s3.backends.local import LocalFileBackend
from fs_s3.backends.s3 import S3FileBackend

__all__ = ["LocalFileBackend", "S3FileBackend"]
