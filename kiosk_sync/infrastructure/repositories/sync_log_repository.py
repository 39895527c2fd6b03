"""
Repositorio del log de auditoría de sincronizaciones (l2l_sync_logs).
"""
import json
from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk_sync.application.dto.sync_dto import SyncRunDTO
from kiosk_sync.infrastructure.database.models import SyncRunModel
from kiosk_sync.infrastructure.external.l2l.types import SyncResult
from kiosk_sync.shared.constants.sync_constants import SyncType


class SyncLogRepository:
    """
    Persiste una fila por corrida top-level.

    El registro se intenta siempre, incluso si la corrida falló; si la
    escritura del log falla se hace rollback y se loguea, pero el caller
    recibe igual su resultado.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        sync_type: SyncType,
        result: SyncResult,
        user_id: Optional[str] = None,
    ) -> Optional[SyncRunModel]:
        """
        Registra el resultado de una corrida.

        Args:
            sync_type: Tipo de corrida (plants, lines, machines, documents, all)
            result: Resultado agregado de la corrida
            user_id: Usuario que disparó la corrida (opcional)

        Returns:
            La fila creada, o None si no se pudo persistir
        """
        entry = SyncRunModel(
            sync_type=SyncType(sync_type).value,
            status=result.status.value,
            records_created=result.created,
            records_updated=result.updated,
            records_deactivated=result.deactivated,
            errors=json.dumps(result.errors, ensure_ascii=False) if result.errors else None,
            synced_by=user_id,
        )
        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
        except Exception:
            await self.db.rollback()
            logger.exception(f"No se pudo registrar la corrida '{sync_type}' en el log")
            return None

        logger.info(
            f"Corrida '{entry.sync_type}' registrada: {entry.status} "
            f"(creados: {entry.records_created}, actualizados: {entry.records_updated}, "
            f"errores: {len(result.errors)})"
        )
        return entry

    async def list_recent(self, limit: int = 50) -> List[SyncRunDTO]:
        """
        Obtiene las últimas corridas, más recientes primero.
        """
        query = (
            select(SyncRunModel)
            .order_by(SyncRunModel.synced_at.desc(), SyncRunModel.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [SyncRunDTO.model_validate(row) for row in result.scalars().all()]
