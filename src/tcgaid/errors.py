"""
Exception taxonomy for tcgaid.

Every failure raised by the barcode grammar, the endpoint resolver, and the
remote query client derives from `TranslationError`, so callers can catch the
whole family at once. Validation errors are raised before any remote call.
"""

from __future__ import annotations

from typing import Iterable, Sequence


class TranslationError(RuntimeError):
    """Base class for every failure raised while translating identifiers."""


class MalformedBarcodeError(TranslationError, ValueError):
    """Raised when one or more barcodes fail structural validation."""

    def __init__(self, message: str, offending: Iterable[str] = ()):
        super().__init__(message)
        self.offending: list[str] = list(offending)


class InconsistentBarcodeLengthError(TranslationError, ValueError):
    """Raised when a batch mixes barcodes with different segment counts."""

    def __init__(self, message: str, segment_counts: Sequence[int] = ()):
        super().__init__(message)
        self.segment_counts: list[int] = sorted(set(segment_counts))


class UnknownGranularityError(TranslationError, ValueError):
    """Raised for an end point outside participant/sample/portion/analyte/plate/center."""


class RemoteServiceError(TranslationError):
    """Raised when the remote catalog fails or answers with an unexpected shape."""
