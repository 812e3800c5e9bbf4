"""Protocol interfaces for pluggable backends."""

from fs_s3.protocols.file_backend import FileBackend

__all__ = ["FileBackend"]
