"""FileBackend protocol for storage backends."""

from collections.abc import AsyncIterator
from typing import Protocol, TypeVar, runtime_checkable

from fs_s3.models import AnyFile, WriteOptions, WriteRequest

F = TypeVar("F", bound=AnyFile)
S = TypeVar("S", bound=AnyFile, covariant=True)


@runtime_checkable
class FileBackend(Protocol[F, S]):
    """Protocol for storage backends (local filesystem, S3).

    ``F`` is the reference type the backend addresses, ``S`` the scanned type
    it produces for that reference.
    """

    async def scan(self, file: F) -> S | None:
        """Get identity metadata for a file. Returns None if it does not exist."""
        ...

    def list(self, file_or_folder: F) -> AsyncIterator[list[S]]:
        """Yield pages of scanned files under a file or folder."""
        ...

    async def read(self, file: F) -> bytes:
        """Read the whole content of a file known to exist."""
        ...

    async def write(self, request: WriteRequest, options: WriteOptions) -> None:
        """Write a body to the request's destination."""
        ...

    async def delete(self, file: F) -> None:
        """Delete a file known to exist."""
        ...

    async def wait_for_file_to_exist(self, file: F) -> None:
        """Block until the file can be observed."""
        ...

    def to_location_string(self, file: F) -> str:
        """Render a reference for humans and logs."""
        ...
