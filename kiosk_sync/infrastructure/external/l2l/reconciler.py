"""
Reconciliador genérico L2L -> base local.

Diseño (resumen):
- Recibe el lote de registros remotos de un scope (un site, una línea...)
- Para cada registro, en el orden que devolvió la API:
  mapea columnas, evalúa la cascada de matching y hace UPDATE o INSERT
- Cada registro se commitea por separado: un registro con error hace
  rollback solo de sí mismo y se anota en `errors`; el lote continúa

Estrategia de idempotencia:
- El matching siempre encuentra la fila creada en una corrida anterior
  (por ID remoto, código o ID legacy), así que re-ejecutar con el mismo
  estado remoto solo produce updates.
- Los UNIQUE de la base (id_l2l, station_id, external_id de plantas)
  cubren el caso de dos corridas concurrentes.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk_sync.infrastructure.external.l2l.matching import find_match
from kiosk_sync.infrastructure.external.l2l.sync_config import EntitySyncConfig
from kiosk_sync.infrastructure.external.l2l.types import (
    RemoteRecord,
    SyncResult,
    describe_record,
    utc_now,
)
from kiosk_sync.shared.constants.sync_constants import EntityStatus
from kiosk_sync.shared.exceptions.base import AppException


Fetch = Callable[[], Awaitable[Any]]


def error_message(error: Exception) -> str:
    """Texto corto de una excepción para el listado de errores del resultado."""
    if isinstance(error, AppException):
        return error.message
    if isinstance(error, DBAPIError) and error.orig is not None:
        return str(error.orig)
    return str(error) or type(error).__name__


class EntityReconciler:
    """
    Reconcilia un tipo de entidad (según EntitySyncConfig) para un scope.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def reconcile_scope(
        self,
        config: EntitySyncConfig,
        fetch: Fetch,
        *,
        parent_id: Optional[int] = None,
        scope: str = "",
    ) -> SyncResult:
        """
        Trae el lote remoto y lo reconcilia.

        Si el fetch completo falla (transporte/envelope) el resultado queda
        con success=False y un único error; no se levanta la excepción.
        """
        result = SyncResult()
        label = f"{config.kind.value}s" + (f" ({scope})" if scope else "")

        try:
            records = await fetch()
        except Exception as e:
            logger.error(f"Error obteniendo {label} de L2L: {error_message(e)}")
            return result.fail(f"Error al obtener {label}: {error_message(e)}")

        if not isinstance(records, list):
            return result.fail(
                f"Error al obtener {label}: respuesta inesperada ({type(records).__name__})"
            )

        logger.info(f"{len(records)} {label} recibidos de L2L")
        return await self.reconcile(config, records, parent_id=parent_id, result=result)

    async def reconcile(
        self,
        config: EntitySyncConfig,
        records: list[RemoteRecord],
        *,
        parent_id: Optional[int] = None,
        result: Optional[SyncResult] = None,
    ) -> SyncResult:
        """
        Upsert de cada registro, aislando errores por registro.
        """
        result = result or SyncResult()

        for position, record in enumerate(records, start=1):
            try:
                created = await self._upsert(config, record, parent_id)
                await self._session.commit()
            except Exception as e:
                await self._session.rollback()
                ref = describe_record(record, position)
                message = f"Error al procesar {config.kind.value} {ref}: {error_message(e)}"
                logger.error(message)
                result.errors.append(message)
                continue

            if created:
                result.created += 1
            else:
                result.updated += 1

        return result

    async def _upsert(
        self,
        config: EntitySyncConfig,
        record: RemoteRecord,
        parent_id: Optional[int],
    ) -> bool:
        """
        UPDATE si la cascada encuentra la fila, INSERT si no.

        Returns:
            True si se creó una fila nueva.
        """
        values = config.map_record(record)
        keys = config.keys_for(record)
        if config.parent_column:
            if parent_id is None:
                raise ValueError(f"Falta {config.parent_column} para {config.kind.value}")
            values[config.parent_column] = parent_id

        match = await find_match(self._session, config.model, config.strategies, keys)

        if match is not None:
            row = match.row
            for column, value in values.items():
                setattr(row, column, value)
            row.status = EntityStatus.ACTIVE.value
            row.updated_at = utc_now()
            await self._session.flush()
            logger.debug(
                f"{config.kind.value} actualizado: {row.name} "
                f"(L2L ID: {keys.remote_id}, match: {type(match.strategy).__name__})"
            )
            return False

        row = config.model(**values, status=EntityStatus.ACTIVE.value)
        self._session.add(row)
        await self._session.flush()
        logger.info(f"{config.kind.value} creado: {row.name} (L2L ID: {keys.remote_id})")
        return True
