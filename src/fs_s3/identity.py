"""Content identity helpers: hashing, MIME types and ETags."""

import hashlib
import mimetypes
from pathlib import PurePosixPath

from fs_s3.models import FileContent

CHUNK_SIZE = 64 * 1024


def md5_bytes(content: bytes) -> str:
    """Hex MD5 of an in-memory body."""
    return hashlib.md5(content).hexdigest()


def md5_file(path: str, chunk_size: int = CHUNK_SIZE) -> str:
    """Hex MD5 of a file, read incrementally so large files never sit in memory."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def mime_type_for(key: str) -> str | None:
    """Guess a MIME type from the file name alone.

    The content is never inspected, so an empty ``.txt`` file and a large one
    get the same answer.
    """
    name = PurePosixPath(key.replace("\\", "/")).name
    mime_type, _ = mimetypes.guess_type(name, strict=False)
    return mime_type


def unwrap_etag(etag: str) -> str:
    """Strip the transport quoting S3 puts around ETags."""
    return etag.strip('"')


def body_bytes(body: FileContent) -> bytes | None:
    """Return an in-memory body as bytes, or None for a stream."""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return None


def body_md5(body: FileContent) -> str | None:
    """MD5 of a body when it can be computed without consuming a stream."""
    content = body_bytes(body)
    if content is None:
        return None
    return md5_bytes(content)
