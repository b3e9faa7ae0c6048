"""Exception types raised by the OCR pipeline."""

from __future__ import annotations


class OcrError(Exception):
    """Base class for every pipeline failure."""


class FetchError(OcrError):
    """Raised when page bytes cannot be downloaded. Retryable."""


class DecodeError(OcrError):
    """Raised when image bytes are malformed or in an unsupported layout."""


class RecognitionError(OcrError):
    """Raised when the text recognizer call fails. Retryable."""


class GeometryError(OcrError):
    """Raised for a recognized line whose geometry is missing or malformed."""


class CatalogError(OcrError):
    """Raised when the manga catalog cannot resolve a chapter."""


class RetryExhaustedError(OcrError):
    """Raised once every retry attempt of an operation has failed."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"operation failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    "OcrError",
    "FetchError",
    "DecodeError",
    "RecognitionError",
    "GeometryError",
    "CatalogError",
    "RetryExhaustedError",
]
