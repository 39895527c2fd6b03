"""
Tests de SyncResult y utilidades puras del pipeline.
"""
import pytest

from kiosk_sync.application.dto.sync_dto import SyncResultDTO
from kiosk_sync.infrastructure.external.l2l.entity_mappings import map_line, map_machine, map_site
from kiosk_sync.infrastructure.external.l2l.types import SyncResult, as_remote_str, describe_record
from kiosk_sync.shared.constants.sync_constants import SyncRunStatus
from kiosk_sync.shared.exceptions.domain import RecordMappingError


class TestStatus:
    def test_success_without_errors(self) -> None:
        assert SyncResult(created=2).status == SyncRunStatus.SUCCESS

    def test_partial_when_errors_but_success(self) -> None:
        result = SyncResult(errors=["Error al procesar machine 2: x"])
        assert result.status == SyncRunStatus.PARTIAL

    def test_error_when_not_success(self) -> None:
        assert SyncResult().fail("Error al obtener sites").status == SyncRunStatus.ERROR


class TestMerge:
    def test_sums_counters_and_ands_success(self) -> None:
        total = SyncResult(created=1, updated=2, errors=["a"])
        total.merge(SyncResult(created=3, updated=0)).merge(SyncResult(success=False, errors=["b"]))

        assert total.created == 4
        assert total.updated == 2
        assert total.deactivated == 0
        assert total.errors == ["a", "b"]
        assert total.success is False

    def test_dto_round_trip_of_counts(self) -> None:
        dto = SyncResultDTO.from_result(SyncResult(created=1, errors=["x"]))
        assert dto.model_dump() == {
            "success": True,
            "created": 1,
            "updated": 0,
            "deactivated": 0,
            "errors": ["x"],
        }


class TestHelpers:
    def test_as_remote_str(self) -> None:
        assert as_remote_str(10) == "10"
        assert as_remote_str("  ST-A ") == "ST-A"
        assert as_remote_str("") is None
        assert as_remote_str(None) is None

    def test_describe_record_falls_back_to_position(self) -> None:
        assert describe_record({"id": 7}, 1) == "7"
        assert describe_record({"code": "M-1"}, 2) == "M-1"
        assert describe_record({}, 3) == "#3"
        assert describe_record("basura", 4) == "#4"


class TestMappings:
    def test_site_mapping(self) -> None:
        assert map_site({"id": 10, "name": "Plant X"}) == {
            "external_id": "10",
            "name": "Plant X",
            "location": "Plant X",
        }

    def test_line_fallback_name(self) -> None:
        values = map_line({"id": 55, "externalid": "L-1"})
        assert values == {"id_l2l": "55", "external_id": "L-1", "name": "Line 55"}

    def test_machine_name_from_code(self) -> None:
        values = map_machine({"id": 301, "code": "Prensa 1", "externalid": "ST-A"})
        assert values["station_id"] == "301"
        assert values["external_id"] == "ST-A"
        assert values["name"] == "Prensa 1"

    def test_machine_without_code(self) -> None:
        assert map_machine({"id": 301})["name"] == "Station 301"

    def test_missing_id_raises(self) -> None:
        with pytest.raises(RecordMappingError):
            map_machine({"code": "sin id"})
