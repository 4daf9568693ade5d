"""
Map a barcode granularity onto the GDC field path that holds it.
"""

from __future__ import annotations

from types import MappingProxyType

from .barcode import Granularity

_CASES = "cases"
_ANALYTES = f"{_CASES}.samples.portions.analytes"

BARCODE_ENDPOINTS = MappingProxyType(
    {
        Granularity.PARTICIPANT: f"{_CASES}.submitter_id",
        Granularity.SAMPLE: f"{_CASES}.samples.submitter_id",
        # portion and analyte are not told apart by the GDC schema
        Granularity.PORTION: _ANALYTES,
        Granularity.ANALYTE: _ANALYTES,
        Granularity.PLATE: f"{_ANALYTES}.aliquots.submitter_id",
        Granularity.CENTER: f"{_ANALYTES}.aliquots.submitter_id",
    }
)

_missing = set(Granularity) - set(BARCODE_ENDPOINTS)
if _missing:
    raise RuntimeError(f"No GDC endpoint for granularity: {sorted(g.value for g in _missing)}")


def resolve(level: Granularity | str) -> str:
    """
    Return the GDC field path for ``level``.

    Raises
    ------
    UnknownGranularityError
        If ``level`` is not one of participant, sample, portion, analyte,
        plate, or center.
    """
    return BARCODE_ENDPOINTS[Granularity.from_label(level)]
