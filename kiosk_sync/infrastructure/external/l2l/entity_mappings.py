"""
Mapeos L2L -> tablas locales por entidad.

Este es el punto donde se decide:
- qué campo remoto alimenta cada columna
- los nombres de respaldo cuando L2L no envía nombre
- qué identificadores participan del matching

Mapeo de identificadores:
- sites:    id -> plants.external_id
- lines:    id -> id_l2l,     externalid -> external_id
- machines: id -> station_id, externalid -> external_id, code -> name
"""

from __future__ import annotations

from typing import Any

from kiosk_sync.infrastructure.database.models import LineModel, PlantModel, StationModel
from kiosk_sync.infrastructure.external.l2l.matching import (
    ByExternalId,
    ByLegacyExternalId,
    ByRemoteId,
    ByUnlinkedName,
    RemoteKeys,
)
from kiosk_sync.infrastructure.external.l2l.sync_config import EntitySyncConfig
from kiosk_sync.infrastructure.external.l2l.types import RemoteRecord, as_remote_str
from kiosk_sync.shared.constants.sync_constants import EntityKind
from kiosk_sync.shared.exceptions.domain import RecordMappingError


def _required_id(record: RemoteRecord) -> str:
    if not isinstance(record, dict):
        raise RecordMappingError(f"Registro inválido (se esperaba objeto): {record!r}")
    remote_id = as_remote_str(record.get("id"))
    if remote_id is None:
        raise RecordMappingError("Registro sin 'id'", field="id")
    return remote_id


# ---------------------------------------------------------------------
# Plants (sites)
# ---------------------------------------------------------------------

def map_site(record: RemoteRecord) -> dict[str, Any]:
    site_id = _required_id(record)
    name = record.get("name") or record.get("code")
    if not name:
        raise RecordMappingError(f"Site {site_id} sin 'name'", field="name")
    return {
        "external_id": site_id,
        "name": name,
        "location": record.get("code") or name,
    }


def site_keys(record: RemoteRecord) -> RemoteKeys:
    return RemoteKeys(remote_id=_required_id(record), name=record.get("name"))


# ---------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------

def map_line(record: RemoteRecord) -> dict[str, Any]:
    l2l_id = _required_id(record)
    return {
        "id_l2l": l2l_id,
        "external_id": as_remote_str(record.get("externalid")),
        "name": record.get("name") or record.get("code") or f"Line {l2l_id}",
    }


def line_keys(record: RemoteRecord) -> RemoteKeys:
    return RemoteKeys(
        remote_id=_required_id(record),
        external_code=as_remote_str(record.get("externalid")),
    )


# ---------------------------------------------------------------------
# Machines (stations)
# ---------------------------------------------------------------------

def map_machine(record: RemoteRecord) -> dict[str, Any]:
    l2l_id = _required_id(record)
    return {
        "station_id": l2l_id,
        "external_id": as_remote_str(record.get("externalid")),
        "name": record.get("code") or f"Station {l2l_id}",
        "description": record.get("description") or None,
    }


def machine_keys(record: RemoteRecord) -> RemoteKeys:
    return RemoteKeys(
        remote_id=_required_id(record),
        external_code=as_remote_str(record.get("externalid")),
    )


PLANT_SYNC = EntitySyncConfig(
    kind=EntityKind.PLANT,
    model=PlantModel,
    strategies=(ByRemoteId("external_id"), ByUnlinkedName()),
    map_record=map_site,
    keys_for=site_keys,
)

# Lines: el código legacy guardaba el ID numérico en external_id, por eso
# no se busca por el código alfanumérico.
LINE_SYNC = EntitySyncConfig(
    kind=EntityKind.LINE,
    model=LineModel,
    strategies=(ByRemoteId("id_l2l"), ByLegacyExternalId()),
    map_record=map_line,
    keys_for=line_keys,
    parent_column="plant_id",
)

STATION_SYNC = EntitySyncConfig(
    kind=EntityKind.STATION,
    model=StationModel,
    strategies=(ByRemoteId("station_id"), ByExternalId(), ByLegacyExternalId()),
    map_record=map_machine,
    keys_for=machine_keys,
    parent_column="line_id",
)
