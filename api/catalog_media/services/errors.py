"""Media pipeline exceptions.

Blob store failures use :class:`catalog_media.storage.base.StorageError`;
everything raised by the compressor, metadata store, and orchestrator derives
from :class:`MediaPipelineError`.
"""

from typing import Optional


class MediaPipelineError(Exception):
    """Base exception for media pipeline errors.

    Carries enough context (operation, owner id, storage path) to diagnose a
    failure without re-running it.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        owner_id: Optional[int] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.owner_id = owner_id
        self.path = path

    def __str__(self) -> str:
        context = [
            f"{name}={value}"
            for name, value in (
                ("operation", self.operation),
                ("owner_id", self.owner_id),
                ("path", self.path),
            )
            if value is not None
        ]
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class CompressionError(MediaPipelineError):
    """Image could not be compressed."""
    pass


class DecodeError(CompressionError):
    """Input bytes are not a readable image."""
    pass


class UnsupportedMediaTypeError(DecodeError):
    """Input MIME type is not an accepted image type."""
    pass


class MetadataError(MediaPipelineError):
    """Metadata row insert, update, or delete failed."""
    pass


class InvalidReorderError(MediaPipelineError):
    """Requested order is not a permutation of the owner's assets."""
    pass


class AssetNotFoundError(MediaPipelineError):
    """Asset does not exist."""
    pass
