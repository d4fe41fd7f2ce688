"""Infrastructure services for thesisflow."""

from thesisflow.services.storage import LocalBlobStore, StoredFile, UploadRejectedError

__all__ = [
    "LocalBlobStore",
    "StoredFile",
    "UploadRejectedError",
]
