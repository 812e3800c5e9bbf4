"""fs-s3 exceptions."""


class FileServiceError(Exception):
    """Base exception for fs-s3."""

    pass


class ConfigError(FileServiceError):
    """Configuration error."""

    pass


class PreconditionViolationError(FileServiceError):
    """A write or copy precondition failed before any I/O was attempted."""

    pass


class DestinationExistsError(PreconditionViolationError):
    """Destination exists and overwriting was not allowed."""

    def __init__(self, location: str) -> None:
        super().__init__(f"Destination already exists: {location}")
        self.location = location


class UnsupportedOperationError(FileServiceError):
    """Operation is not available for this kind of file."""

    pass
