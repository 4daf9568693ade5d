"""
TCGA barcode grammar.

A barcode is a run of segments joined by one delimiter character, from
coarse to fine:

    TCGA-XX-XXXX-11X-01X-XXXX-XX
    |    |  |    |   |   |    └ center
    |    |  |    |   |   └ plate
    |    |  |    |   └ portion + analyte
    |    |  |    └ sample + vial
    |    |  └ participant
    |    └ tissue source site
    └ project

The number of segments present is the barcode's granularity. The delimiter
is not fixed; it is the first non-alphanumeric character of the barcode.
A batch is expected to be homogeneous: one delimiter, one segment count.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Optional, Sequence

from stairval.notepad import Notepad, create_notepad

from .errors import (
    InconsistentBarcodeLengthError,
    MalformedBarcodeError,
    UnknownGranularityError,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_PROJECT = "TCGA"
MIN_SEGMENTS = 3
MAX_SEGMENTS = 7

_DELIMITER = re.compile(r"[^A-Za-z0-9]")


class Granularity(Enum):
    """
    Depth of specificity encoded by a barcode, coarse to fine.
    Portion and analyte share a segment count and a GDC field path; plate
    and center share a GDC field path but differ by one segment.
    """

    PARTICIPANT = "participant"
    SAMPLE = "sample"
    PORTION = "portion"
    ANALYTE = "analyte"
    PLATE = "plate"
    CENTER = "center"

    @classmethod
    def from_label(cls, label: "Granularity | str") -> "Granularity":
        """
        Convert a label such as ``"Sample"`` or ``" plate "`` into the enum.
        """
        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            raise UnknownGranularityError(f"Unknown granularity: {label!r}")
        try:
            return cls(label.strip().lower())
        except ValueError:
            choices = ", ".join(g.value for g in cls)
            raise UnknownGranularityError(
                f"Unknown granularity {label!r}; expected one of: {choices}"
            ) from None

    @property
    def segment_count(self) -> int:
        """Number of barcode segments a barcode of this granularity carries."""
        return _SEGMENTS_BY_GRANULARITY[self]


_SEGMENTS_BY_GRANULARITY = MappingProxyType(
    {
        Granularity.PARTICIPANT: 3,
        Granularity.SAMPLE: 4,
        Granularity.PORTION: 5,
        Granularity.ANALYTE: 5,
        Granularity.PLATE: 6,
        Granularity.CENTER: 7,
    }
)

# segment count -> granularity; anything under three segments reads as participant
_GRANULARITY_BY_SEGMENTS = MappingProxyType(
    {
        1: Granularity.PARTICIPANT,
        2: Granularity.PARTICIPANT,
        3: Granularity.PARTICIPANT,
        4: Granularity.SAMPLE,
        5: Granularity.PORTION,
        6: Granularity.PLATE,
        7: Granularity.CENTER,
    }
)


@dataclass(frozen=True)
class BarcodeSegments:
    """
    A barcode broken into its named segments.

    Attributes:
        barcode: The original barcode string.
        delimiter: The character separating the segments.
        project: Project token, e.g. 'TCGA'.
        tissue_source_site: Two-character tissue source site code.
        participant: Participant code.
        sample_vial: Sample type and vial, e.g. '01A'. None above sample level.
        portion_analyte: Portion and analyte, e.g. '01D'. None above portion level.
        plate: Plate code. None above plate level.
        center: Sequencing/characterization center code. None unless present.
    """

    barcode: str
    delimiter: str
    project: str
    tissue_source_site: str
    participant: str
    sample_vial: Optional[str] = None
    portion_analyte: Optional[str] = None
    plate: Optional[str] = None
    center: Optional[str] = None

    @property
    def granularity(self) -> Granularity:
        return _GRANULARITY_BY_SEGMENTS[len(split_barcode(self.barcode, self.delimiter))]


def detect_delimiter(barcode: str) -> str:
    """
    Return the first non-alphanumeric character of ``barcode``.

    Raises
    ------
    MalformedBarcodeError
        If the barcode is a single alphanumeric run (fewer than two segments).
    """
    if not isinstance(barcode, str):
        raise MalformedBarcodeError(f"Barcode must be a string, got {barcode!r}", [repr(barcode)])
    match = _DELIMITER.search(barcode)
    if match is None:
        raise MalformedBarcodeError(
            f"Cannot detect a delimiter in barcode {barcode!r}", [barcode]
        )
    return match.group(0)


def split_barcode(barcode: str, delimiter: Optional[str] = None) -> List[str]:
    """Split a barcode into segments, detecting the delimiter if not given."""
    if delimiter is None:
        delimiter = detect_delimiter(barcode)
    return barcode.split(delimiter)


def validate(
    barcodes: Iterable[str],
    project: str = DEFAULT_PROJECT,
    notepad: Optional[Notepad] = None,
) -> None:
    """
    Check that every barcode starts with the ``project`` token and has at
    least three segments.

    Each offending barcode is recorded as an error on ``notepad`` (a fresh
    one when not supplied) before a single `MalformedBarcodeError` listing
    all of them is raised.
    """
    if notepad is None:
        notepad = create_notepad("barcodes")
    offending: List[str] = []
    for barcode in barcodes:
        problem = _barcode_problem(barcode, project)
        if problem:
            notepad.add_error(f"Barcode {barcode!r}: {problem}")
            offending.append(barcode)
    if offending:
        raise MalformedBarcodeError(
            f"{len(offending)} malformed barcode(s): {', '.join(map(str, offending))}",
            offending,
        )


def _barcode_problem(barcode: str, project: str) -> Optional[str]:
    # None means the barcode is structurally fine
    if not isinstance(barcode, str) or not barcode:
        return "not a non-empty string"
    if not barcode.startswith(project):
        return f"does not start with {project!r}"
    match = _DELIMITER.search(barcode)
    if match is None:
        return "no delimiter found"
    n_segments = len(barcode.split(match.group(0)))
    if n_segments < MIN_SEGMENTS:
        return f"has {n_segments} segment(s), at least {MIN_SEGMENTS} required"
    if n_segments > MAX_SEGMENTS:
        return f"has {n_segments} segments, at most {MAX_SEGMENTS} allowed"
    return None


def classify_granularity(barcodes: Sequence[str]) -> Granularity:
    """
    Infer the granularity shared by a batch of barcodes.

    The delimiter is detected from the first barcode and used for the whole
    batch. All barcodes must split into the same number of segments.

    Raises
    ------
    MalformedBarcodeError
        If the batch is empty, no delimiter is found, or a barcode has more
        than seven segments.
    InconsistentBarcodeLengthError
        If barcodes in the batch have different segment counts.
    """
    barcodes = list(barcodes)
    if not barcodes:
        raise MalformedBarcodeError("Cannot classify an empty barcode batch")
    delimiter = detect_delimiter(barcodes[0])
    counts = [len(b.split(delimiter)) for b in barcodes]
    distinct = set(counts)
    if len(distinct) > 1:
        raise InconsistentBarcodeLengthError(
            f"Barcodes have mixed segment counts {sorted(distinct)}; "
            "translate each granularity separately",
            counts,
        )
    n_segments = counts[0]
    if n_segments > MAX_SEGMENTS:
        raise MalformedBarcodeError(
            f"Barcodes have {n_segments} segments, at most {MAX_SEGMENTS} allowed",
            barcodes,
        )
    level = _GRANULARITY_BY_SEGMENTS[n_segments]
    LOGGER.debug("Classified %d barcode(s) with %d segments as %s", len(barcodes), n_segments, level.value)
    return level


def parse_barcode(barcode: str, project: str = DEFAULT_PROJECT) -> BarcodeSegments:
    """Validate one barcode and name its segments."""
    validate([barcode], project=project)
    delimiter = detect_delimiter(barcode)
    parts = barcode.split(delimiter)
    # pad so the optional finer segments come out as None
    parts += [None] * (MAX_SEGMENTS - len(parts))
    return BarcodeSegments(barcode, delimiter, *parts)


def truncate_barcodes(barcodes: Iterable[str], level: "Granularity | str") -> List[str]:
    """
    Cut each barcode down to the segments of ``level``,
    e.g. 'TCGA-B0-5117-11A-01D-1421-08' at sample level -> 'TCGA-B0-5117-11A'.
    """
    level = Granularity.from_label(level)
    keep = level.segment_count
    truncated: List[str] = []
    for barcode in barcodes:
        delimiter = detect_delimiter(barcode)
        parts = barcode.split(delimiter)
        if len(parts) < keep:
            raise MalformedBarcodeError(
                f"Barcode {barcode!r} is coarser than {level.value} level", [barcode]
            )
        truncated.append(delimiter.join(parts[:keep]))
    return truncated
