"""
Tests for IdTranslator.uuid_to_barcode against the in-memory catalog:
- case UUIDs always translate to participant barcodes,
- file UUIDs honour the end point and fan out over cases/samples,
- empty input / no match give empty relations,
- malformed responses raise RemoteServiceError.
"""

import re

import pytest

from conftest import (
    CASE_B0,
    CASE_CK,
    FILE_CK_NORMAL,
    FILE_CK_TUMOR,
    FILE_ORPHAN,
    FILE_PAIRED,
    StaticService,
)
from tcgaid.errors import RemoteServiceError, UnknownGranularityError
from tcgaid.translate import IdTranslator, IdType, uuid_to_barcode


def test_case_uuid_translates_to_participant_barcode(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode([CASE_CK], id_type="case_id")
    assert list(frame.columns) == ["case_id", "submitter_id"]
    assert frame.values.tolist() == [[CASE_CK, "TCGA-CK-4948"]]
    assert re.fullmatch(r"TCGA-\w{2}-\w{4}", frame.loc[0, "submitter_id"])
    assert catalog.calls == [
        {
            "entity": "cases",
            "filters": {"op": "in", "content": {"field": "case_id", "value": [CASE_CK]}},
            "fields": ["submitter_id"],
            "legacy": False,
        }
    ]


def test_case_uuid_ignores_end_point(catalog):
    translator = IdTranslator(catalog)
    plate = translator.uuid_to_barcode([CASE_CK, CASE_B0], id_type="case", end_point="plate")
    default = translator.uuid_to_barcode([CASE_CK, CASE_B0], id_type="case")
    assert plate.equals(default)
    assert list(plate.columns) == ["case_id", "submitter_id"]
    assert catalog.calls[0]["fields"] == ["submitter_id"]


def test_case_uuid_accepts_any_end_point(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode([CASE_CK], id_type="case_id", end_point="aliquot")
    assert frame.values.tolist() == [[CASE_CK, "TCGA-CK-4948"]]
    assert catalog.calls[0]["fields"] == ["submitter_id"]


def test_file_uuid_at_sample_level_fans_out(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode(
        [FILE_PAIRED], id_type=IdType.FILE, end_point="sample"
    )
    assert list(frame.columns) == ["file_id", "cases.samples.submitter_id"]
    assert frame.values.tolist() == [
        [FILE_PAIRED, "TCGA-CK-4948-01A"],
        [FILE_PAIRED, "TCGA-D1-A17N-01A"],
    ]
    assert catalog.calls[0]["entity"] == "files"
    assert catalog.calls[0]["filters"]["content"]["field"] == "file_id"


def test_row_count_is_sum_of_barcodes_per_record(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode(
        [FILE_CK_TUMOR, FILE_PAIRED, FILE_ORPHAN], id_type="file_id"
    )
    # 1 + 2 + 0
    assert len(frame) == 3
    assert frame["file_id"].tolist() == [FILE_CK_TUMOR, FILE_PAIRED, FILE_PAIRED]
    assert FILE_ORPHAN not in set(frame["file_id"])


@pytest.mark.parametrize(
    "end_point, barcode",
    [
        ("portion", "TCGA-CK-4948-10A-01D"),
        ("analyte", "TCGA-CK-4948-10A-01D"),
        ("plate", "TCGA-CK-4948-10A-01D-1421-08"),
        ("center", "TCGA-CK-4948-10A-01D-1421-08"),
    ],
)
def test_file_uuid_finer_end_points(catalog, end_point, barcode):
    frame = IdTranslator(catalog).uuid_to_barcode(
        [FILE_CK_NORMAL], id_type="file_id", end_point=end_point
    )
    assert frame.iloc[:, 1].tolist() == [barcode]


def test_no_matching_records_gives_empty_relation(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode(["not-a-real-uuid"], id_type="file_id")
    assert frame.empty
    assert list(frame.columns) == ["file_id", "cases.submitter_id"]


def test_empty_input_makes_no_query(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode([], id_type="file_id", end_point="sample")
    assert frame.empty
    assert list(frame.columns) == ["file_id", "cases.samples.submitter_id"]
    assert catalog.calls == []


def test_single_string_is_one_id(catalog):
    frame = IdTranslator(catalog).uuid_to_barcode(CASE_CK)
    assert len(frame) == 1


def test_legacy_flag_is_passed_through(catalog):
    IdTranslator(catalog).uuid_to_barcode([CASE_CK], legacy=True)
    assert catalog.calls[0]["legacy"] is True


def test_unknown_end_point_fails_before_query(catalog):
    with pytest.raises(UnknownGranularityError):
        IdTranslator(catalog).uuid_to_barcode([CASE_CK], id_type="file_id", end_point="aliquot")
    assert catalog.calls == []


def test_unknown_id_type_raises(catalog):
    with pytest.raises(ValueError) as info:
        IdTranslator(catalog).uuid_to_barcode([CASE_CK], id_type="sample_id")
    assert info.value.__cause__ is None
    assert info.value.__suppress_context__
    assert catalog.calls == []


def test_singleton_wrapped_values_are_unwrapped():
    service = StaticService(
        [{"id": "f1", "cases": [[{"submitter_id": ["TCGA-CK-4948"]}]]}]
    )
    frame = uuid_to_barcode(["f1"], id_type="file_id", service=service)
    assert frame.values.tolist() == [["f1", "TCGA-CK-4948"]]


def test_unexpected_shape_raises_remote_service_error():
    service = StaticService([{"id": "f1", "cases": "TCGA-CK-4948"}])
    with pytest.raises(RemoteServiceError, match="cases.submitter_id"):
        uuid_to_barcode(["f1"], id_type="file_id", service=service)


def test_record_without_id_raises_remote_service_error():
    service = StaticService([{"cases": [{"submitter_id": "TCGA-CK-4948"}]}])
    with pytest.raises(RemoteServiceError):
        uuid_to_barcode(["f1"], id_type="file_id", service=service)


def test_remote_errors_propagate_unchanged():
    error = RemoteServiceError("GDC unavailable")
    service = StaticService(error=error)
    with pytest.raises(RemoteServiceError) as info:
        uuid_to_barcode(["f1"], service=service)
    assert info.value is error
    assert service.calls == 1
