"""
Tests de las estrategias de matching contra una base en memoria.
"""
import pytest

from kiosk_sync.infrastructure.database.models import LineModel, PlantModel, StationModel
from kiosk_sync.infrastructure.external.l2l.entity_mappings import STATION_SYNC
from kiosk_sync.infrastructure.external.l2l.matching import (
    ByExternalId,
    ByLegacyExternalId,
    ByRemoteId,
    ByUnlinkedName,
    RemoteKeys,
    find_match,
)


async def _seed_line(db_session) -> LineModel:
    plant = PlantModel(name="Planta Norte", external_id="902")
    db_session.add(plant)
    await db_session.flush()
    line = LineModel(plant_id=plant.id, name="Linea 1", id_l2l="55")
    db_session.add(line)
    await db_session.flush()
    return line


class TestCriteria:
    def test_external_id_not_applicable_without_code(self) -> None:
        keys = RemoteKeys(remote_id="301")
        assert ByExternalId().criterion(StationModel, keys) is None

    def test_unlinked_name_not_applicable_without_name(self) -> None:
        keys = RemoteKeys(remote_id="10")
        assert ByUnlinkedName().criterion(PlantModel, keys) is None

    def test_remote_id_always_applicable(self) -> None:
        keys = RemoteKeys(remote_id="301")
        assert ByRemoteId("station_id").criterion(StationModel, keys) is not None
        assert ByLegacyExternalId().criterion(StationModel, keys) is not None


class TestFindMatch:
    @pytest.mark.asyncio
    async def test_match_by_remote_id(self, db_session) -> None:
        line = await _seed_line(db_session)
        station = StationModel(line_id=line.id, station_id="301", external_id="ST-A", name="A")
        db_session.add(station)
        await db_session.flush()

        match = await find_match(
            db_session, StationModel, STATION_SYNC.strategies, RemoteKeys("301", "ST-OTHER")
        )

        assert match is not None
        assert match.row.id == station.id
        assert isinstance(match.strategy, ByRemoteId)

    @pytest.mark.asyncio
    async def test_match_by_external_code(self, db_session) -> None:
        line = await _seed_line(db_session)
        station = StationModel(line_id=line.id, station_id=None, external_id="ST-A", name="A")
        db_session.add(station)
        await db_session.flush()

        match = await find_match(
            db_session, StationModel, STATION_SYNC.strategies, RemoteKeys("301", "ST-A")
        )

        assert match is not None
        assert isinstance(match.strategy, ByExternalId)

    @pytest.mark.asyncio
    async def test_match_legacy_numeric_external_id(self, db_session) -> None:
        line = await _seed_line(db_session)
        legacy = StationModel(line_id=line.id, station_id=None, external_id="301", name="Legacy")
        db_session.add(legacy)
        await db_session.flush()

        match = await find_match(
            db_session, StationModel, STATION_SYNC.strategies, RemoteKeys("301", "ST-A")
        )

        assert match is not None
        assert match.row.id == legacy.id
        assert isinstance(match.strategy, ByLegacyExternalId)

    @pytest.mark.asyncio
    async def test_cascade_order_prefers_remote_id(self, db_session) -> None:
        line = await _seed_line(db_session)
        by_code = StationModel(line_id=line.id, external_id="ST-A", name="Por codigo")
        by_id = StationModel(line_id=line.id, station_id="301", name="Por id")
        db_session.add_all([by_code, by_id])
        await db_session.flush()

        match = await find_match(
            db_session, StationModel, STATION_SYNC.strategies, RemoteKeys("301", "ST-A")
        )

        assert match.row.id == by_id.id

    @pytest.mark.asyncio
    async def test_no_match(self, db_session) -> None:
        await _seed_line(db_session)

        match = await find_match(
            db_session, StationModel, STATION_SYNC.strategies, RemoteKeys("999", "ST-Z")
        )

        assert match is None

    @pytest.mark.asyncio
    async def test_unlinked_plant_by_name(self, db_session) -> None:
        manual = PlantModel(name="Plant X", external_id=None)
        linked = PlantModel(name="Plant Y", external_id="11")
        db_session.add_all([manual, linked])
        await db_session.flush()

        strategies = (ByRemoteId("external_id"), ByUnlinkedName())
        match = await find_match(db_session, PlantModel, strategies, RemoteKeys("10", name="Plant X"))
        linked_match = await find_match(db_session, PlantModel, strategies, RemoteKeys("12", name="Plant Y"))

        assert match.row.id == manual.id
        assert linked_match is None
