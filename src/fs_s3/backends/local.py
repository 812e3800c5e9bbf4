"""Local filesystem-based file storage."""

import asyncio
import os
import shutil
import stat
from collections.abc import AsyncIterator
from typing import Any

from fs_s3.backends.executor import run_blocking
from fs_s3.identity import body_bytes, md5_file, mime_type_for
from fs_s3.models import LocalFile, ScannedLocalFile, WriteOptions, WriteRequest

DEFAULT_POLL_PERIOD = 0.1


class LocalFileBackend:
    """File storage using the local filesystem.

    Keys are native paths. Blocking calls run in the shared thread pool.
    """

    def __init__(self, poll_period: float = DEFAULT_POLL_PERIOD, **kwargs: Any) -> None:
        """Initialize local file backend.

        Args:
            poll_period: Seconds between existence checks in wait_for_file_to_exist
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.poll_period = poll_period

    def _scan(self, file: LocalFile) -> ScannedLocalFile | None:
        try:
            info = os.stat(file.key)
            if not stat.S_ISREG(info.st_mode):
                return None
            md5 = md5_file(file.key)
        except FileNotFoundError:
            return None

        return ScannedLocalFile(
            key=file.key,
            md5=md5,
            size=info.st_size,
            mime_type=mime_type_for(file.key),
        )

    async def scan(self, file: LocalFile) -> ScannedLocalFile | None:
        """Stat and hash a file. Returns None if it is missing or not a regular file."""
        return await run_blocking(self._scan, file)

    def _stat_mode(self, key: str) -> int | None:
        try:
            return os.stat(key).st_mode
        except FileNotFoundError:
            return None

    def _partition(self, folder: LocalFile) -> tuple[list[LocalFile], list[LocalFile]]:
        """Split the immediate children of a folder into files and folders."""
        files: list[LocalFile] = []
        folders: list[LocalFile] = []
        with os.scandir(folder.key) as entries:
            for entry in entries:
                child = LocalFile(key=os.path.join(folder.key, entry.name))
                if entry.is_file():
                    files.append(child)
                elif entry.is_dir():
                    folders.append(child)
        return files, folders

    async def list(self, file_or_folder: LocalFile) -> AsyncIterator[list[ScannedLocalFile]]:
        """List files under a path, one page per directory, depth first.

        A file yields a single page with its own scan. Sibling folders are
        visited in the order the OS returns them.
        """
        mode = await run_blocking(self._stat_mode, file_or_folder.key)
        if mode is None:
            return

        if stat.S_ISREG(mode):
            scanned = await self.scan(file_or_folder)
            yield [scanned] if scanned is not None else []
        elif stat.S_ISDIR(mode):
            files, folders = await run_blocking(self._partition, file_or_folder)
            results = await asyncio.gather(*(self.scan(f) for f in files))
            # Files removed since the directory was read are left out
            yield [s for s in results if s is not None]
            for folder in folders:
                async for page in self.list(folder):
                    yield page

    async def read(self, file: LocalFile) -> bytes:
        """Read a whole file."""

        def _read() -> bytes:
            with open(file.key, "rb") as f:
                return f.read()

        return await run_blocking(_read)

    async def write(self, request: WriteRequest, options: WriteOptions | None = None) -> None:
        """Write a body to a file, replacing it if present.

        Parent directories must already exist.
        """
        content = body_bytes(request.body)

        def _write() -> None:
            with open(request.destination.key, "wb") as f:
                if content is not None:
                    f.write(content)
                else:
                    shutil.copyfileobj(request.body, f)

        await run_blocking(_write)

    async def copy(self, source: LocalFile, destination: LocalFile) -> None:
        """Copy one file to another path, creating parent directories."""
        await self.ensure_directory_existence(destination)
        await run_blocking(shutil.copyfile, source.key, destination.key)

    async def delete(self, file: LocalFile) -> None:
        """Delete a file."""
        await run_blocking(os.unlink, file.key)

    async def ensure_directory_existence(self, file: LocalFile) -> None:
        """Create the parent directories of a file path."""
        parent = os.path.dirname(file.key)
        if parent:
            await run_blocking(os.makedirs, parent, exist_ok=True)

    async def wait_for_file_to_exist(self, file: LocalFile) -> None:
        """Poll until the path exists. There is no timeout."""
        while not await run_blocking(os.path.exists, file.key):
            await asyncio.sleep(self.poll_period)

    def to_location_string(self, file: LocalFile) -> str:
        """Local files are shown as their path."""
        return file.key
