"""Tests for query-time name search."""

import pytest

from intake_hub.domain.patient_record import PatientRecord, StoredRecord
from intake_hub.domain.ports import InvalidQueryError
from intake_hub.domain.search_index import search_records, validate_query


@pytest.fixture
def records(make_payload):
    names = [("Ann", "Lee"), ("John", "Smith"), ("Lee", "Leeson"), ("Mary", "Smithers")]
    return [
        StoredRecord.from_record(
            PatientRecord.from_mapping(make_payload(firstName=first, lastName=last)), index
        )
        for index, (first, last) in enumerate(names)
    ]


class TestSearchRecords:

    def test_case_insensitive(self, records):
        lower = search_records(records, "smith")
        upper = search_records(records, "SMITH")
        assert [r.id for r in lower] == [r.id for r in upper] == [1, 3]

    def test_union_of_first_and_last_name_matches_in_store_order(self, records):
        assert [r.id for r in search_records(records, "lee")] == [0, 2]

    def test_record_matching_both_names_appears_once(self, records):
        results = search_records(records, "Lee")
        assert [r.id for r in results].count(2) == 1

    def test_no_match_returns_empty_list(self, records):
        assert search_records(records, "zzz") == []

    def test_empty_store(self):
        assert search_records([], "ann") == []

    @pytest.mark.parametrize("name_part", [None, ""])
    def test_missing_name_raises(self, records, name_part):
        with pytest.raises(InvalidQueryError):
            search_records(records, name_part)


def test_validate_query_returns_value():
    assert validate_query("Lee") == "Lee"
