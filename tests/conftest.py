"""
Shared fixtures: a small in-memory GDC catalog standing in for the remote
query service, so translation tests never touch the network.

Catalog layout
--------------
cases
  CASE_CK  TCGA-CK-4948  samples 01A, 10A
  CASE_D1  TCGA-D1-A17N  sample 01A
  CASE_B0  TCGA-B0-5117  sample 11A
files
  FILE_CK_TUMOR   CK-01A
  FILE_CK_NORMAL  CK-10A
  FILE_PAIRED     CK-01A and D1-01A (one file, two cases)
  FILE_B0         B0-11A
  FILE_ORPHAN     no cases
"""

import pytest

from tcgaid.gdc import QueryService

CASE_CK = "ae55b2d3-62a1-419e-9f9a-5ddfac356db4"
CASE_D1 = "2f6a1b6e-0e4c-4c38-9d1e-1b5e2d0c7a11"
CASE_B0 = "5d7b7a34-8d55-4f4a-8a7b-6a0f0f2b9c22"

FILE_CK_TUMOR = "0001801b-54b0-4551-8d7a-d66fb59429bf"
FILE_CK_NORMAL = "002c67f2-ff52-4246-9d65-a3f69df6789e"
FILE_PAIRED = "003143c8-bbbf-46b9-a96f-f58530f4bb82"
FILE_B0 = "00a1b2c3-1111-4222-8333-944455556666"
FILE_ORPHAN = "00ffffff-0000-4000-8000-000000000000"


def _case(submitter_id: str, *sample_codes: str) -> dict:
    # nested case -> samples -> portions -> analytes -> aliquots, as GDC returns it
    samples = []
    for code in sample_codes:
        sample_id = f"{submitter_id}-{code}"
        analyte_id = f"{sample_id}-01D"
        samples.append(
            {
                "submitter_id": sample_id,
                "portions": [
                    {
                        "analytes": [
                            {
                                "submitter_id": analyte_id,
                                "aliquots": [{"submitter_id": f"{analyte_id}-1421-08"}],
                            }
                        ]
                    }
                ],
            }
        )
    return {"submitter_id": submitter_id, "samples": samples}


CASES = {
    CASE_CK: _case("TCGA-CK-4948", "01A", "10A"),
    CASE_D1: _case("TCGA-D1-A17N", "01A"),
    CASE_B0: _case("TCGA-B0-5117", "11A"),
}

FILES = {
    FILE_CK_TUMOR: [_case("TCGA-CK-4948", "01A")],
    FILE_CK_NORMAL: [_case("TCGA-CK-4948", "10A")],
    FILE_PAIRED: [_case("TCGA-CK-4948", "01A"), _case("TCGA-D1-A17N", "01A")],
    FILE_B0: [_case("TCGA-B0-5117", "11A")],
    FILE_ORPHAN: [],
}


def _values_at(node, keys):
    if isinstance(node, list):
        return [v for item in node for v in _values_at(item, keys)]
    if not keys:
        if isinstance(node, dict):
            return [node["submitter_id"]]
        return [node]
    if not isinstance(node, dict) or keys[0] not in node:
        return []
    return _values_at(node[keys[0]], keys[1:])


class FakeCatalog(QueryService):
    """
    Answers `in` filters from the tables above and remembers every query.
    Like GDC, a matched file comes back with all of its cases.
    """

    def __init__(self):
        self.calls = []

    def query(self, entity, filters, fields, legacy=False):
        self.calls.append(
            {"entity": entity, "filters": filters, "fields": list(fields), "legacy": legacy}
        )
        assert filters["op"] == "in"
        field = filters["content"]["field"]
        wanted = set(filters["content"]["value"])
        if entity == "cases":
            assert field == "case_id"
            return [{"id": cid, **case} for cid, case in CASES.items() if cid in wanted]
        assert entity == "files"
        records = []
        for fid, cases in FILES.items():
            record = {"id": fid, "cases": cases}
            if field == "file_id":
                matched = fid in wanted
            else:
                matched = bool(wanted & set(_values_at(record, field.split("."))))
            if matched:
                records.append(record)
        return records


class StaticService(QueryService):
    """Returns canned records (or raises) regardless of the query."""

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = 0

    def query(self, entity, filters, fields, legacy=False):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.records


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()
