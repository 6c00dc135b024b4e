"""Custom exception hierarchy for the generation stream client."""

from errors.exceptions import (
    GenerationServiceError,
    StreamError,
    StreamFailedError,
    StreamTransportError,
)

__all__ = [
    "GenerationServiceError",
    "StreamError",
    "StreamFailedError",
    "StreamTransportError",
]
