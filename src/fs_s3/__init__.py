"""fs-s3 - One async interface over local files and S3 objects."""

from fs_s3.backends import LocalFileBackend, S3FileBackend
from fs_s3.config import FileServiceConfig, create_s3_client
from fs_s3.copy import CopyOrchestrator
from fs_s3.dispatch import classify, route
from fs_s3.exceptions import (
    ConfigError,
    DestinationExistsError,
    FileServiceError,
    PreconditionViolationError,
    UnsupportedOperationError,
)
from fs_s3.models import (
    AnyFile,
    CopyOperation,
    CopyOptions,
    CopyRequest,
    FileKind,
    LocalFile,
    S3File,
    ScannedFile,
    ScannedLocalFile,
    ScannedS3File,
    UploadProgress,
    WriteOptions,
    WriteRequest,
    file_ref,
)
from fs_s3.observability import (
    LogLevel,
    OperationContext,
    StructuredLogger,
    Timer,
    configure_logging,
    get_logger,
)
from fs_s3.protocols import FileBackend
from fs_s3.service import FileService

__version__ = "0.1.0"
__all__ = [
    # Core
    "FileService",
    "FileServiceConfig",
    "create_s3_client",
    # Files
    "AnyFile",
    "CopyOperation",
    "CopyOptions",
    "CopyRequest",
    "FileKind",
    "LocalFile",
    "S3File",
    "ScannedFile",
    "ScannedLocalFile",
    "ScannedS3File",
    "UploadProgress",
    "WriteOptions",
    "WriteRequest",
    "file_ref",
    # Dispatch
    "CopyOrchestrator",
    "FileBackend",
    "LocalFileBackend",
    "S3FileBackend",
    "classify",
    "route",
    # Errors
    "ConfigError",
    "DestinationExistsError",
    "FileServiceError",
    "PreconditionViolationError",
    "UnsupportedOperationError",
    # Observability
    "LogLevel",
    "OperationContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "get_logger",
]
