"""
Export masivo asíncrono de L2L (dispatches).

Flujo: start -> polling -> finished | failed | timed_out.
Al terminar se descarga el archivo (NDJSON) y se busca un registro objetivo.

Es independiente del orquestador de sincronización: sus fallas solo afectan
al caller del export.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from loguru import logger

from kiosk_sync.infrastructure.external.l2l.l2l_client import L2LClient, Sleep
from kiosk_sync.infrastructure.external.l2l.reconciler import error_message
from kiosk_sync.infrastructure.external.l2l.types import as_remote_str
from kiosk_sync.shared.constants.sync_constants import (
    REMOTE_JOB_FAILED,
    REMOTE_JOB_FINISHED,
    ExportJobState,
)


@dataclass
class ExportJob:
    """Estado de un job de export."""

    state: ExportJobState = ExportJobState.STARTED
    job_id: Optional[str] = None
    download_url: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in (
            ExportJobState.FINISHED,
            ExportJobState.FAILED,
            ExportJobState.TIMED_OUT,
        )


@dataclass
class ExportSearchResult:
    """Resultado de fetch_and_find."""

    job: ExportJob
    file_path: Optional[Path] = None
    record: Optional[dict[str, Any]] = None
    attachment_url: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.record is not None


def _first_object(payload: Any) -> dict[str, Any]:
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    return payload if isinstance(payload, dict) else {}


class ExportJobPoller:
    """
    Máquina de estados del export.

    Espera `poll_interval_s` antes de cada consulta de estado; después de
    `max_attempts` consultas sin estado terminal el job queda TIMED_OUT.
    Ningún método levanta excepciones: los errores quedan en `job.error`.
    """

    def __init__(
        self,
        client: L2LClient,
        *,
        poll_interval_s: float = 5.0,
        max_attempts: int = 20,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._poll_interval_s = poll_interval_s
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def start(self, **params: Any) -> ExportJob:
        """Inicia el export; sin `jobid` en la respuesta el job falla de inmediato."""
        job = ExportJob()
        try:
            payload = await self._client.start_dispatch_export(**params)
        except Exception as e:
            job.state = ExportJobState.FAILED
            job.error = f"Falla al iniciar exportación: {error_message(e)}"
            logger.error(job.error)
            return job

        job_id = as_remote_str(_first_object(payload).get("jobid"))
        if job_id is None:
            job.state = ExportJobState.FAILED
            job.error = f"Falla al iniciar exportación. Respuesta sin jobid: {payload!r}"
            logger.error(job.error)
            return job

        job.job_id = job_id
        logger.info(f"Job de export iniciado. ID: {job_id}")
        return job

    async def poll(self, job: ExportJob) -> ExportJob:
        """Consulta el estado hasta un estado terminal o agotar el presupuesto."""
        if job.is_terminal:
            return job

        job.state = ExportJobState.POLLING
        while job.attempts < self._max_attempts:
            await self._sleep(self._poll_interval_s)
            job.attempts += 1

            try:
                status = _first_object(await self._client.get_async_job_status(job.job_id))
            except Exception as e:
                job.state = ExportJobState.FAILED
                job.error = f"Error consultando estado del job {job.job_id}: {error_message(e)}"
                logger.error(job.error)
                return job

            remote_status = status.get("status")
            logger.info(
                f"Job {job.job_id} intento {job.attempts}/{self._max_attempts}: status = {remote_status}"
            )

            if remote_status == REMOTE_JOB_FINISHED:
                job.state = ExportJobState.FINISHED
                job.download_url = status.get("download_url")
                logger.success(f"Export {job.job_id} finalizado")
                return job

            if remote_status == REMOTE_JOB_FAILED or status.get("error"):
                job.state = ExportJobState.FAILED
                job.error = str(status.get("error") or "Job falló sin mensaje de error")
                logger.error(f"Job {job.job_id} falló: {job.error}")
                return job

        job.state = ExportJobState.TIMED_OUT
        job.error = f"Timeout: job {job.job_id} sin terminar tras {job.attempts} consultas"
        logger.warning(job.error)
        return job

    async def run(self, **params: Any) -> ExportJob:
        job = await self.start(**params)
        return await self.poll(job)

    async def fetch_and_find(
        self,
        target: Any,
        destination_dir: Path,
        *,
        fields: Sequence[str] = ("dispatchnumber", "id"),
        **params: Any,
    ) -> ExportSearchResult:
        """
        Ejecuta el export completo y busca un registro en el archivo.

        Args:
            target: Valor buscado (se compara como string)
            destination_dir: Carpeta donde se guarda el archivo exportado
            fields: Campos del registro comparados contra target
            **params: Parámetros del export (site, lastupdated_since, ...)

        Returns:
            ExportSearchResult con el job, el archivo y el registro encontrado
        """
        job = await self.run(**params)
        result = ExportSearchResult(job=job)

        if job.state != ExportJobState.FINISHED:
            result.errors.append(job.error or f"Export terminó en estado {job.state.value}")
            return result

        if not job.download_url:
            result.errors.append(f"Export {job.job_id} finalizado sin download_url")
            return result

        destination = Path(destination_dir) / f"export_{job.job_id}.jsonl"
        try:
            result.file_path = await self._client.download(job.download_url, destination)
        except Exception as e:
            result.errors.append(f"Error descargando export {job.job_id}: {error_message(e)}")
            return result

        try:
            result.record = find_export_record(result.file_path, target, fields)
        except OSError as e:
            result.errors.append(f"Error leyendo export {job.job_id}: {e}")
            logger.error(result.errors[-1])
            return result

        if result.record is None:
            logger.warning(f"Registro {target} no encontrado en el export {job.job_id}")
            return result

        result.attachment_url = find_attachment_url(result.record)
        logger.info(f"Registro {target} encontrado en el export {job.job_id}")
        return result


def iter_export_records(path: Path) -> Iterator[dict[str, Any]]:
    """
    Registros de un archivo NDJSON. Se saltan las líneas vacías, las que
    traen UTF-8 inválido y las que no parsean como JSON.
    """
    with Path(path).open("rb") as fh:
        for raw in fh:
            raw = raw.strip()
            if not raw:
                continue
            try:
                record = json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.debug(f"Línea inválida en {path}, se omite")
                continue
            if isinstance(record, dict):
                yield record


def find_export_record(
    path: Path,
    target: Any,
    fields: Sequence[str] = ("dispatchnumber", "id"),
) -> Optional[dict[str, Any]]:
    wanted = as_remote_str(target)
    for record in iter_export_records(path):
        for name in fields:
            if as_remote_str(record.get(name)) == wanted:
                return record
    return None


def find_attachment_url(data: Any) -> Optional[str]:
    """
    Busca recursivamente una URL de adjunto (termina en .pdf o contiene
    'attachment') y retorna la primera que empiece con http.
    """
    if isinstance(data, str):
        looks_like_attachment = data.lower().endswith(".pdf") or "attachment" in data
        if looks_like_attachment and data.startswith("http"):
            return data
        return None
    if isinstance(data, dict):
        children = data.values()
    elif isinstance(data, (list, tuple)):
        children = data
    else:
        return None
    for child in children:
        found = find_attachment_url(child)
        if found:
            return found
    return None
