"""Local-disk blob store for thesis files.

Validates uploads against the size and extension limits, writes them under
the upload directory with a collision-resistant name, and resolves stored
paths back to files for download.
"""

import os
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Tuple

from thesisflow.common.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_EXTENSIONS = (".pdf", ".doc", ".docx")

EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")
_CHUNK_SIZE = 1024 * 1024


class UploadRejectedError(Exception):
    """Raised when an upload violates the size or type limits."""


@dataclass
class StoredFile:
    """Reference to a stored thesis file.

    Attributes:
        filename: Name on disk (unique)
        original_name: Name the client uploaded
        path: Storage path relative to the storage root, e.g. "uploads/<filename>"
        mime_type: MIME type recorded for downloads
        size: File size in bytes
    """
    filename: str
    original_name: str
    path: str
    mime_type: str
    size: int


def sanitize_filename(filename: str) -> str:
    """Replace anything outside [A-Za-z0-9.-] with an underscore.

    Example:
        >>> sanitize_filename("my thesis (final).pdf")
        'my_thesis__final_.pdf'
    """
    return _UNSAFE_CHARS.sub("_", os.path.basename(filename))


def validate_extension(
    filename: str,
    allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> Tuple[bool, Optional[str]]:
    """Validate the upload's name and extension (case-insensitive).

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_extension("thesis.PDF")
        (True, None)
        >>> validate_extension("thesis.txt")
        (False, 'Only PDF and Word documents are allowed')
    """
    if not filename or not filename.strip():
        return False, "No file uploaded"

    ext = os.path.splitext(filename)[1].lower()
    if ext not in {e.lower() for e in allowed_extensions}:
        return False, "Only PDF and Word documents are allowed"

    return True, None


def validate_file_size(size_bytes: int, max_bytes: int = DEFAULT_MAX_BYTES) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_bytes:
        return False, f"File exceeds maximum size of {max_bytes} bytes (got {size_bytes} bytes)"

    return True, None


class LocalBlobStore:
    """Stores thesis files on the local filesystem.

    Files live in ``<root>/<upload_dirname>/``; stored paths are relative to
    ``root`` so records stay valid if the tree moves.
    """

    def __init__(
        self,
        upload_dir: str,
        *,
        max_bytes: int = DEFAULT_MAX_BYTES,
        allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ):
        self.upload_dir = Path(upload_dir).resolve()
        self.root = self.upload_dir.parent
        self.max_bytes = max_bytes
        self.allowed_extensions = tuple(e.lower() for e in allowed_extensions)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def unique_name(self, original_name: str) -> str:
        """Build ``<millis>-<random>-<sanitized name>``."""
        millis = int(time.time() * 1000)
        return f"{millis}-{random.randint(0, 10**9)}-{sanitize_filename(original_name)}"

    def store(self, stream: BinaryIO, original_name: str, content_type: Optional[str] = None) -> StoredFile:
        """
        Copy an upload stream into the store.

        The stream is copied in chunks and abandoned as soon as it exceeds
        the size limit.

        Raises:
            UploadRejectedError: Bad extension, empty, or too large
        """
        ok, error = validate_extension(original_name, self.allowed_extensions)
        if not ok:
            raise UploadRejectedError(error)

        filename = self.unique_name(original_name)
        destination = self.upload_dir / filename
        size = 0
        try:
            with open(destination, "wb") as out:
                while True:
                    chunk = stream.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise UploadRejectedError(
                            f"File exceeds maximum size of {self.max_bytes} bytes"
                        )
                    out.write(chunk)
            ok, error = validate_file_size(size, self.max_bytes)
            if not ok:
                raise UploadRejectedError(error)
        except UploadRejectedError:
            destination.unlink(missing_ok=True)
            raise

        ext = os.path.splitext(original_name)[1].lower()
        mime_type = EXTENSION_MIME_TYPES.get(ext) or content_type or "application/octet-stream"
        stored = StoredFile(
            filename=filename,
            original_name=original_name,
            path=f"{self.upload_dir.name}/{filename}",
            mime_type=mime_type,
            size=size,
        )
        logger.info(f"Stored upload {original_name!r} as {stored.path} ({size} bytes)")
        return stored

    def resolve(self, stored_path: str) -> Optional[Path]:
        """Map a stored path to an existing file, or None.

        Paths escaping the upload directory resolve to None.
        """
        if not stored_path:
            return None
        candidate = (self.root / stored_path).resolve()
        if self.upload_dir not in candidate.parents:
            logger.warning(f"Refusing stored path outside upload dir: {stored_path}")
            return None
        if not candidate.is_file():
            return None
        return candidate

    def delete(self, stored_path: str) -> bool:
        """Remove a stored file. Used to clean up after a failed submission."""
        path = self.resolve(stored_path)
        if path is None:
            return False
        path.unlink()
        return True
