"""
Reconciliación de documentos (Work Instructions) por site.

L2L lista documentos por site + categoría, no por machine, así que:
- se hace un fetch por site
- cada documento se asocia a una estación local por el external_id de la
  machine (código alfanumérico)
- documentos sin estación conocida se saltan con warning (no es error)
- el PDF sale de un sub-fetch de viewinfo cuya falla se tolera
- el upsert es por (station_id, category): un documento nuevo de la misma
  categoría pisa al anterior
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiosk_sync.infrastructure.database.models import DocumentModel
from kiosk_sync.infrastructure.external.l2l.l2l_client import L2LClient
from kiosk_sync.infrastructure.external.l2l.reconciler import error_message
from kiosk_sync.infrastructure.external.l2l.types import (
    RemoteRecord,
    SyncResult,
    as_remote_str,
    describe_record,
    utc_now,
)
from kiosk_sync.shared.constants.sync_constants import EntityKind
from kiosk_sync.shared.exceptions.domain import RecordMappingError


@dataclass(frozen=True)
class QualifyingStation:
    """Estación local lista para recibir documentos."""

    id: int
    line_id: int
    external_id: str
    site_id: str
    name: str = ""


def machine_key_for(document: RemoteRecord) -> str:
    """External id de la machine dueña del documento ('' si no viene)."""
    for key in ("machine", "machine_id", "externalid"):
        value = as_remote_str(document.get(key))
        if value:
            return value
    return ""


def view_info_url(payload) -> Optional[str]:
    """Extrae la URL del payload de viewinfo (objeto o lista de un elemento)."""
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if isinstance(payload, dict):
        return payload.get("url") or payload.get("viewinfo") or None
    return None


def station_map_for(
    site_id: str, stations: Sequence[QualifyingStation]
) -> Dict[str, QualifyingStation]:
    """
    external_id -> estación. external_id no es único: ante un choque gana
    la primera estación y se avisa cuál queda sin documentos.
    """
    mapping: Dict[str, QualifyingStation] = {}
    for station in stations:
        kept = mapping.setdefault(station.external_id, station)
        if kept is not station:
            logger.warning(
                f"Site {site_id}: external_id '{station.external_id}' repetido; "
                f"la estación {station.name or station.id} (id {station.id}) no recibirá "
                f"documentos, se usa {kept.name or kept.id} (id {kept.id})"
            )
    return mapping


class DocumentReconciler:
    """
    Upsert de documentos de una categoría fija para las estaciones de un site.
    """

    def __init__(
        self,
        session: AsyncSession,
        client: L2LClient,
        *,
        category_id: str = "776",
        category_name: str = "Work Instruction",
    ) -> None:
        self._session = session
        self._client = client
        self._category_id = category_id
        self._category_name = category_name

    async def reconcile_site(
        self,
        site_id: str,
        stations: Sequence[QualifyingStation],
    ) -> SyncResult:
        result = SyncResult()
        logger.info(f"Procesando Site {site_id} ({len(stations)} estaciones)")

        try:
            documents = await self._client.get_documents_by_category(site_id, self._category_id)
        except Exception as e:
            logger.error(f"Error al buscar documentos del site {site_id}: {error_message(e)}")
            return result.fail(f"Error al buscar documentos del site {site_id}: {error_message(e)}")

        if not isinstance(documents, list):
            return result.fail(
                f"Error al buscar documentos del site {site_id}: respuesta inesperada"
            )

        logger.info(f"{len(documents)} documentos recibidos (categoría {self._category_id})")

        station_map = station_map_for(site_id, stations)
        skipped = 0

        for position, document in enumerate(documents, start=1):
            try:
                if not isinstance(document, dict):
                    raise RecordMappingError(f"Documento inválido: {document!r}")

                machine_key = machine_key_for(document)
                station = station_map.get(machine_key)
                if station is None:
                    logger.warning(
                        f"Documento {document.get('id')} sin estación asociada (machine: {machine_key})"
                    )
                    skipped += 1
                    continue

                created = await self._upsert_document(site_id, station, document)
                await self._session.commit()
            except Exception as e:
                await self._session.rollback()
                ref = describe_record(document, position)
                message = f"Error al procesar {EntityKind.DOCUMENT.value} {ref}: {error_message(e)}"
                logger.error(message)
                result.errors.append(message)
                continue

            if created:
                result.created += 1
            else:
                result.updated += 1

        if skipped:
            logger.warning(f"{skipped} documentos del site {site_id} sin estación local")
        return result

    async def _upsert_document(
        self,
        site_id: str,
        station: QualifyingStation,
        document: RemoteRecord,
    ) -> bool:
        document_id = as_remote_str(document.get("id"))
        if document_id is None:
            raise RecordMappingError("Documento sin 'id'", field="id")

        title = document.get("name") or document.get("title") or f"{self._category_name} {document_id}"
        viewinfo = await self._fetch_view_info(document_id, site_id)
        values = {
            "line_id": station.line_id,
            "external_id": document_id,
            "title": title,
            "document_url": viewinfo or document.get("url") or document.get("document_url") or "",
            "view_info_url": viewinfo,
            "version": as_remote_str(document.get("version")),
        }

        existing = (
            await self._session.execute(
                select(DocumentModel).where(
                    DocumentModel.station_id == station.id,
                    DocumentModel.category == self._category_name,
                )
            )
        ).scalars().first()

        if existing is not None:
            for column, value in values.items():
                setattr(existing, column, value)
            existing.updated_at = utc_now()
            await self._session.flush()
            return False

        self._session.add(
            DocumentModel(station_id=station.id, category=self._category_name, **values)
        )
        await self._session.flush()
        logger.info(f"Documento creado: {title} (Estación: {station.name or station.id})")
        return True

    async def _fetch_view_info(self, document_id: str, site_id: str) -> Optional[str]:
        """Sub-fetch de viewinfo; una falla aquí no invalida el documento."""
        try:
            payload = await self._client.get_document_view_info(document_id, site_id)
        except Exception as e:
            logger.warning(
                f"No fue posible obtener viewinfo del documento {document_id}: {error_message(e)}"
            )
            return None
        return view_info_url(payload)
