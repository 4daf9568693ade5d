"""
Translate between TCGA barcodes and GDC case/file UUIDs.

These relationships are not one-to-one: a file UUID can map onto several
barcodes (one per case/sample it derives from) and a participant barcode onto
many files. Every translation therefore returns a two-column
`pandas.DataFrame` with one row per identifier pair.

Endpoints
---------
``end_point`` selects how much of the barcode a file UUID is translated to:

- participant: project, tissue source site and participant (TCGA-XX-XXXX)
- sample: adds sample and vial (TCGA-XX-XXXX-11X)
- portion, analyte: adds portion and analyte (TCGA-XX-XXXX-11X-01X)
- plate, center: the full aliquot barcode (TCGA-XX-XXXX-11X-01X-XXXX-XX)

Case UUIDs always translate to participant barcodes.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from stairval.notepad import Notepad

from .barcode import DEFAULT_PROJECT, Granularity, classify_granularity, validate
from .endpoint import resolve
from .errors import RemoteServiceError
from .gdc import GDCQueryService, QueryService, in_filter

LOGGER = logging.getLogger(__name__)

# case UUIDs resolve to the case's own submitter id, whatever end point was asked for
CASE_BARCODE_FIELD = "submitter_id"
BARCODE_COLUMN = "barcode"
FILE_ID_COLUMN = "file_id"


class IdType(Enum):
    """Kind of UUID being translated."""

    CASE = "case_id"
    FILE = "file_id"

    @classmethod
    def from_label(cls, label: "IdType | str") -> "IdType":
        """
        Accept 'case_id'/'file_id' as well as the short 'case'/'file'.
        """
        if isinstance(label, cls):
            return label
        key = str(label).strip().lower()
        mapping = {
            "case": cls.CASE,
            "case_id": cls.CASE,
            "file": cls.FILE,
            "file_id": cls.FILE,
        }
        try:
            return mapping[key]
        except KeyError:
            raise ValueError(f"Unknown id type: {label!r}; expected 'case_id' or 'file_id'") from None

    @property
    def entity(self) -> str:
        """GDC endpoint holding records of this kind."""
        return "cases" if self is IdType.CASE else "files"


class IdTranslator:
    """
    Run barcode/UUID translations against a `QueryService`.

    Each translation issues exactly one query; the translator keeps no state
    between calls.
    """

    def __init__(self, service: QueryService):
        self._service = service

    def uuid_to_barcode(
        self,
        ids: Iterable[str] | str,
        id_type: IdType | str = IdType.CASE,
        end_point: Granularity | str = Granularity.PARTICIPANT,
        legacy: bool = False,
    ) -> pd.DataFrame:
        """
        Translate case or file UUIDs into TCGA barcodes.

        Parameters
        ----------
        ids : iterable of str
            Case or file UUIDs.
        id_type : IdType or str
            'case_id' (default) or 'file_id'.
        end_point : Granularity or str
            Barcode cutoff, see module docs. Only honoured for file UUIDs.
        legacy : bool
            Search the legacy archive instead of the current release.

        Returns
        -------
        pandas.DataFrame
            Columns ``(id_type, field path)``, one row per (UUID, barcode) pair.
        """
        ids = _as_list(ids)
        id_type = IdType.from_label(id_type)
        # end_point is never consulted for case UUIDs, not even for validity
        field = CASE_BARCODE_FIELD if id_type is IdType.CASE else resolve(end_point)
        columns = [id_type.value, field]
        if not ids:
            return pd.DataFrame([], columns=columns)

        LOGGER.debug("Translating %d %s(s) to barcodes via %r", len(ids), id_type.value, field)
        records = self._service.query(
            id_type.entity,
            in_filter(id_type.value, ids),
            [field],
            legacy=legacy,
        )
        rows = _flatten(records, field, id_type.value)
        LOGGER.debug("%d record(s) expanded to %d row(s)", len(records), len(rows))
        return pd.DataFrame(rows, columns=columns)

    def barcode_to_uuid(
        self,
        barcodes: Iterable[str] | str,
        legacy: bool = False,
        project: str = DEFAULT_PROJECT,
        notepad: Optional[Notepad] = None,
    ) -> pd.DataFrame:
        """
        Translate TCGA barcodes into the UUIDs of the files derived from them.

        The batch must share one granularity. Only rows whose barcode is one
        of the inputs are kept, since a matched file also reports the other
        cases/samples it belongs to.

        Returns
        -------
        pandas.DataFrame
            Columns ``(barcode, file_id)``.
        """
        barcodes = _as_list(barcodes)
        columns = [BARCODE_COLUMN, FILE_ID_COLUMN]
        if not barcodes:
            return pd.DataFrame([], columns=columns)

        validate(barcodes, project=project, notepad=notepad)
        level = classify_granularity(barcodes)
        field = resolve(level)
        LOGGER.debug("Translating %d %s barcode(s) via %r", len(barcodes), level.value, field)

        records = self._service.query(
            IdType.FILE.entity,
            in_filter(field, barcodes),
            [field],
            legacy=legacy,
        )
        pairs = [(barcode, file_id) for file_id, barcode in _flatten(records, field, FILE_ID_COLUMN)]
        wanted = set(barcodes)
        kept = [pair for pair in pairs if pair[0] in wanted]
        if len(kept) != len(pairs):
            LOGGER.debug("Dropped %d row(s) not matching an input barcode", len(pairs) - len(kept))
        return pd.DataFrame(kept, columns=columns)


def _as_list(values: Iterable[str] | str) -> List[str]:
    if isinstance(values, str):
        return [values]
    return list(values)


def _flatten(records: Sequence[Dict[str, Any]], field: str, id_field: str) -> List[Tuple[str, str]]:
    # one (record id, barcode) row per barcode found under `field`
    keys = field.split(".")
    rows: List[Tuple[str, str]] = []
    for record in records:
        if not isinstance(record, dict):
            raise RemoteServiceError(f"Expected a record object, got {type(record).__name__}")
        record_id = record.get("id") or record.get(id_field)
        if not record_id:
            raise RemoteServiceError(f"Record without an 'id': {record!r}")
        for barcode in _leaf_values(record, keys, field, record_id):
            rows.append((record_id, barcode))
    return rows


def _leaf_values(node: Any, keys: Sequence[str], field: str, record_id: str) -> List[str]:
    """
    Unwrap ``node`` along ``keys`` into the flat list of barcode strings.

    Lists fan out at any depth and missing keys contribute nothing. The walk
    ends on strings, or on objects carrying a ``submitter_id`` (the
    portion/analyte path stops at the analyte object).
    """
    if node is None:
        return []
    if isinstance(node, list):
        values: List[str] = []
        for item in node:
            values.extend(_leaf_values(item, keys, field, record_id))
        return values
    if not keys:
        if isinstance(node, str):
            return [node]
        if isinstance(node, dict) and CASE_BARCODE_FIELD in node:
            return _leaf_values(node[CASE_BARCODE_FIELD], (), field, record_id)
        raise RemoteServiceError(
            f"Record {record_id!r}: expected barcode strings at {field!r}, got {node!r}"
        )
    if not isinstance(node, dict):
        raise RemoteServiceError(
            f"Record {record_id!r}: expected an object at {keys[0]!r} of {field!r}, got {node!r}"
        )
    return _leaf_values(node.get(keys[0]), keys[1:], field, record_id)


def uuid_to_barcode(
    ids: Iterable[str] | str,
    id_type: IdType | str = IdType.CASE,
    end_point: Granularity | str = Granularity.PARTICIPANT,
    legacy: bool = False,
    service: Optional[QueryService] = None,
) -> pd.DataFrame:
    """
    Translate case or file UUIDs into TCGA barcodes using the GDC API
    (or ``service`` when given). See `IdTranslator.uuid_to_barcode`.

    Example: ``uuid_to_barcode(["ae55b2d3-62a1-419e-9f9a-5ddfac356db4"])`` returns
    columns ``case_id`` and ``submitter_id`` with participant barcodes.
    """
    translator = IdTranslator(service or GDCQueryService())
    return translator.uuid_to_barcode(ids, id_type=id_type, end_point=end_point, legacy=legacy)


def barcode_to_uuid(
    barcodes: Iterable[str] | str,
    legacy: bool = False,
    service: Optional[QueryService] = None,
) -> pd.DataFrame:
    """
    Translate TCGA barcodes into file UUIDs using the GDC API
    (or ``service`` when given). See `IdTranslator.barcode_to_uuid`.
    """
    return IdTranslator(service or GDCQueryService()).barcode_to_uuid(barcodes, legacy=legacy)
