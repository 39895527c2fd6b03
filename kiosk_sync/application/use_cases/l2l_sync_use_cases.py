"""
Casos de uso de sincronización L2L -> base local.

Orden de dependencias: Plantas -> Líneas -> Estaciones -> Documentos.
Cada etapa se alimenta solo de los padres que ya tienen el identificador
remoto que necesita; los que no lo tienen se saltan sin llamar a la API.
"""
from functools import partial
from typing import Awaitable, Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk_sync.core.config import settings
from kiosk_sync.infrastructure.database.models import LineModel, PlantModel, StationModel
from kiosk_sync.infrastructure.executor.serial_executor import SerialExecutor, sync_executor
from kiosk_sync.infrastructure.external.l2l.document_sync import (
    DocumentReconciler,
    QualifyingStation,
)
from kiosk_sync.infrastructure.external.l2l.entity_mappings import (
    LINE_SYNC,
    PLANT_SYNC,
    STATION_SYNC,
)
from kiosk_sync.infrastructure.external.l2l.l2l_client import L2LClient
from kiosk_sync.infrastructure.external.l2l.reconciler import EntityReconciler, error_message
from kiosk_sync.infrastructure.external.l2l.types import SyncResult
from kiosk_sync.infrastructure.repositories.sync_log_repository import SyncLogRepository
from kiosk_sync.application.dto.sync_dto import SyncRunDTO
from kiosk_sync.shared.constants.sync_constants import EntityStatus, SyncType


Stage = Callable[[], Awaitable[SyncResult]]


class L2LSyncUseCases:
    """
    Orquestador de la sincronización.

    La sesión se inyecta (no hay engine global). Cada operación pública:
    - se ejecuta en el executor serial (una corrida a la vez por proceso)
    - registra exactamente una fila en el log de auditoría
    - siempre retorna un SyncResult completo, nunca levanta por errores remotos
    """

    def __init__(
        self,
        db: AsyncSession,
        client: L2LClient,
        *,
        recorder: Optional[SyncLogRepository] = None,
        executor: Optional[SerialExecutor] = None,
        document_category_id: str = settings.L2L_DOCUMENT_CATEGORY_ID,
        document_category_name: str = settings.L2L_DOCUMENT_CATEGORY_NAME,
    ):
        self.db = db
        self.client = client
        self.recorder = recorder or SyncLogRepository(db)
        self.executor = executor or sync_executor
        self.reconciler = EntityReconciler(db)
        self.documents = DocumentReconciler(
            db,
            client,
            category_id=document_category_id,
            category_name=document_category_name,
        )

    # ------------------------------------------------------------------
    # Operaciones públicas
    # ------------------------------------------------------------------

    async def sync_plants(self, user_id: Optional[str] = None) -> SyncResult:
        return await self._execute(SyncType.PLANTS, self._run_plants, user_id)

    async def sync_lines(self, user_id: Optional[str] = None) -> SyncResult:
        return await self._execute(SyncType.LINES, self._run_lines, user_id)

    async def sync_stations(self, user_id: Optional[str] = None) -> SyncResult:
        return await self._execute(SyncType.STATIONS, self._run_stations, user_id)

    async def sync_documents(self, user_id: Optional[str] = None) -> SyncResult:
        return await self._execute(SyncType.DOCUMENTS, self._run_documents, user_id)

    async def sync_all(self, user_id: Optional[str] = None) -> SyncResult:
        """
        Ejecuta las cuatro etapas en orden y registra una sola corrida 'all'.

        Una etapa fallida no detiene las siguientes: cada una se filtra por
        sus propios padres.
        """
        return await self._execute(SyncType.ALL, self._run_all, user_id)

    async def recent_runs(self, limit: Optional[int] = None) -> List[SyncRunDTO]:
        """Últimas corridas registradas, más recientes primero."""
        return await self.recorder.list_recent(limit or settings.SYNC_LOG_LIMIT)

    # ------------------------------------------------------------------
    # Ejecución
    # ------------------------------------------------------------------

    async def _execute(self, sync_type: SyncType, stage: Stage, user_id: Optional[str]) -> SyncResult:
        return await self.executor.run(self._run_and_record, sync_type, stage, user_id)

    async def _run_and_record(
        self,
        sync_type: SyncType,
        stage: Stage,
        user_id: Optional[str],
    ) -> SyncResult:
        logger.info(f"Iniciando sincronización L2L '{sync_type.value}' (usuario: {user_id or '-'})")
        try:
            result = await stage()
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Error inesperado en sincronización '{sync_type.value}'")
            result = SyncResult().fail(
                f"Error inesperado en sincronización {sync_type.value}: {error_message(e)}"
            )

        await self.recorder.record(sync_type, result, user_id)

        summary = (
            f"Sincronización '{sync_type.value}' finalizada: creados={result.created}, "
            f"actualizados={result.updated}, errores={len(result.errors)}"
        )
        if result.success and not result.errors:
            logger.success(summary)
        else:
            logger.warning(summary)
        return result

    async def _run_all(self) -> SyncResult:
        result = SyncResult()
        for stage in (self._run_plants, self._run_lines, self._run_stations, self._run_documents):
            result.merge(await stage())
        return result

    # ------------------------------------------------------------------
    # Etapas
    # ------------------------------------------------------------------

    async def _run_plants(self) -> SyncResult:
        return await self.reconciler.reconcile_scope(PLANT_SYNC, self.client.get_sites)

    async def _run_lines(self) -> SyncResult:
        query = (
            select(PlantModel.id, PlantModel.external_id, PlantModel.name)
            .where(
                PlantModel.status == EntityStatus.ACTIVE.value,
                PlantModel.external_id.isnot(None),
            )
            .order_by(PlantModel.id)
        )
        plants = (await self.db.execute(query)).all()

        if not plants:
            return SyncResult().fail("Ninguna planta con Site ID (external_id) configurado")

        result = SyncResult()
        for plant_id, site_id, name in plants:
            logger.info(f"Sincronizando líneas de la planta {name} (Site: {site_id})")
            result.merge(
                await self.reconciler.reconcile_scope(
                    LINE_SYNC,
                    partial(self.client.get_lines, site_id),
                    parent_id=plant_id,
                    scope=f"site {site_id}",
                )
            )
        return result

    async def _run_stations(self) -> SyncResult:
        query = (
            select(LineModel.id, LineModel.id_l2l, LineModel.name)
            .where(
                LineModel.status == EntityStatus.ACTIVE.value,
                LineModel.id_l2l.isnot(None),
            )
            .order_by(LineModel.id)
        )
        lines = (await self.db.execute(query)).all()

        if not lines:
            return SyncResult().fail("Ninguna linea con id_l2l encontrada")

        result = SyncResult()
        for line_id, id_l2l, name in lines:
            logger.info(f"Sincronizando estaciones de la línea {name} (L2L ID: {id_l2l})")
            result.merge(
                await self.reconciler.reconcile_scope(
                    STATION_SYNC,
                    partial(self.client.get_machines, id_l2l),
                    parent_id=line_id,
                    scope=f"line {id_l2l}",
                )
            )
        return result

    async def _run_documents(self) -> SyncResult:
        stations_by_site = await self._qualifying_stations_by_site()

        if not stations_by_site:
            return SyncResult().fail("Ninguna estacion con external_id encontrada")

        result = SyncResult()
        for site_id, stations in stations_by_site.items():
            result.merge(await self.documents.reconcile_site(site_id, stations))
        return result

    async def _qualifying_stations_by_site(self) -> Dict[str, List[QualifyingStation]]:
        """
        Estaciones activas con external_id cuya planta tiene Site ID,
        agrupadas por site (una consulta de documentos por site).
        """
        query = (
            select(
                StationModel.id,
                StationModel.line_id,
                StationModel.external_id,
                StationModel.name,
                PlantModel.external_id,
            )
            .join(LineModel, StationModel.line_id == LineModel.id)
            .join(PlantModel, LineModel.plant_id == PlantModel.id)
            .where(
                StationModel.status == EntityStatus.ACTIVE.value,
                StationModel.external_id.isnot(None),
                PlantModel.external_id.isnot(None),
            )
            .order_by(PlantModel.id, StationModel.id)
        )
        rows = (await self.db.execute(query)).all()

        grouped: Dict[str, List[QualifyingStation]] = {}
        for station_id, line_id, external_id, name, site_id in rows:
            grouped.setdefault(site_id, []).append(
                QualifyingStation(
                    id=station_id,
                    line_id=line_id,
                    external_id=external_id,
                    site_id=site_id,
                    name=name,
                )
            )
        return grouped
