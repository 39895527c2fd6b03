"""
Estrategias de matching registro remoto -> fila local.

Cada estrategia es una variante etiquetada (dataclass inmutable) que solo
construye el criterio SQL a partir de las claves del registro; no hace I/O.
`find_match` ejecuta la cascada en orden y se detiene en el primer match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement


@dataclass(frozen=True)
class RemoteKeys:
    """
    Claves candidatas de un registro remoto.

    - remote_id: ID numérico de L2L (siempre presente)
    - external_code: código alfanumérico (`externalid`), opcional
    - name: nombre visible, usado solo para vincular plantas cargadas a mano
    """

    remote_id: str
    external_code: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ByRemoteId:
    """Columna dedicada al ID remoto (id_l2l, station_id, external_id en plantas)."""

    column: str

    def criterion(self, model: Any, keys: RemoteKeys) -> Optional[ColumnElement]:
        return getattr(model, self.column) == keys.remote_id


@dataclass(frozen=True)
class ByExternalId:
    """`external_id` local igual al código alfanumérico remoto."""

    column: str = "external_id"

    def criterion(self, model: Any, keys: RemoteKeys) -> Optional[ColumnElement]:
        if not keys.external_code:
            return None
        return getattr(model, self.column) == keys.external_code


@dataclass(frozen=True)
class ByLegacyExternalId:
    """
    `external_id` local igual al ID numérico remoto.

    Versiones anteriores guardaban el ID numérico en external_id.
    """

    column: str = "external_id"

    def criterion(self, model: Any, keys: RemoteKeys) -> Optional[ColumnElement]:
        return getattr(model, self.column) == keys.remote_id


@dataclass(frozen=True)
class ByUnlinkedName:
    """Fila cargada a mano (sin external_id) con el mismo nombre."""

    column: str = "name"
    link_column: str = "external_id"

    def criterion(self, model: Any, keys: RemoteKeys) -> Optional[ColumnElement]:
        if not keys.name:
            return None
        return (getattr(model, self.column) == keys.name) & (
            getattr(model, self.link_column).is_(None)
        )


MatchStrategy = Union[ByRemoteId, ByExternalId, ByLegacyExternalId, ByUnlinkedName]


@dataclass(frozen=True)
class MatchResult:
    row: Any
    strategy: MatchStrategy


async def find_match(
    session: AsyncSession,
    model: Any,
    strategies: Sequence[MatchStrategy],
    keys: RemoteKeys,
) -> Optional[MatchResult]:
    """
    Evalúa la cascada de estrategias en orden fijo.

    Las estrategias no aplicables (criterion None) se saltan. Si una
    estrategia matchea varias filas se toma la de menor id.
    """
    for strategy in strategies:
        clause = strategy.criterion(model, keys)
        if clause is None:
            continue
        result = await session.execute(
            select(model).where(clause).order_by(model.id).limit(1)
        )
        row = result.scalars().first()
        if row is not None:
            return MatchResult(row=row, strategy=strategy)
    return None
