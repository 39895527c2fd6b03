"""
Cliente mínimo de la API REST de L2L (Leading2Lean).

Requisitos cubiertos:
- httpx (async)
- solo GET: la API L2L no acepta otros métodos
- autenticación por query string (`auth=<API key>`)
- timeout fijo por request
- normalización del envelope {success, data, error}
- rate-limit/backoff (429, 5xx)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import httpx
from loguru import logger

from kiosk_sync.core.config import Settings
from kiosk_sync.shared.exceptions.domain import L2LApiError, SyncConfigError


@dataclass(frozen=True)
class L2LCredentials:
    base_url: str
    api_key: str


Sleep = Callable[[float], Awaitable[Any]]


class L2LClient:
    """
    Cliente HTTP de L2L. Cada método retorna el `data` del envelope.

    Importante:
    - No hace cast de tipos de los registros: eso se decide en los mapeos.
    - `data` ausente o null se normaliza a lista vacía.
    - Cualquier falla se levanta como L2LApiError {message, endpoint, status}.
    """

    def __init__(
        self,
        credentials: L2LCredentials,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        list_limit: int = 1000,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._creds = credentials
        self._base_url = credentials.base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._list_limit = list_limit
        self._sleep = sleep
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def __aenter__(self) -> "L2LClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cierra el cliente HTTP si fue creado por esta instancia."""
        if self._owns_http:
            await self._http.aclose()

    def build_url(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> str:
        """
        Construye la URL completa con autenticación.

        `auth` siempre va primero; los parámetros None se omiten y el resto
        se serializa como string.
        """
        query: list[tuple[str, str]] = [("auth", self._creds.api_key)]
        for key, value in (params or {}).items():
            if value is None:
                continue
            query.append((key, str(value)))
        return str(httpx.URL(f"{self._base_url}{endpoint}", params=query))

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_sites(self) -> Any:
        """Lista de sites (plantas)."""
        return await self._fetch("/sites/")

    async def get_lines(self, site_id: Optional[str] = None) -> Any:
        """Lista de líneas, opcionalmente filtradas por site."""
        params: dict[str, Any] = {"limit": self._list_limit}
        if site_id:
            params["site"] = site_id
        return await self._fetch("/lines/", params)

    async def get_machines(self, line_id: Optional[str] = None) -> Any:
        """
        Lista de machines (estaciones) de una línea.

        `line_id` debe ser el ID numérico de L2L (id_l2l), no el código.
        """
        params: dict[str, Any] = {"limit": self._list_limit}
        if line_id:
            params["line"] = line_id
        return await self._fetch("/machines/", params)

    async def get_documents(self, **filters: Any) -> Any:
        return await self._fetch("/documents/", filters)

    async def get_documents_by_category(
        self,
        site_id: str,
        category_id: str,
        external_id: Optional[str] = None,
    ) -> Any:
        """Documentos de una categoría para un site (opcionalmente de una machine)."""
        params: dict[str, Any] = {
            "site": site_id,
            "category": category_id,
            "params_use_codes": "0",
        }
        if external_id:
            params["externalid"] = external_id
        return await self._fetch("/documents/list_bycategory/", params)

    async def get_document_view_info(self, document_id: str, site_id: str) -> Any:
        """Viewinfo (URL del adjunto/PDF) de un documento."""
        return await self._fetch(f"/documents/viewinfo/{document_id}/", {"site": site_id})

    async def get_event_data(self, **params: Any) -> Any:
        """Datos de evento de un dispatch (dispatch_id, dispatch_number, ...)."""
        return await self._fetch("/dispatches/get_event_data/", params)

    async def start_dispatch_export(self, **params: Any) -> Any:
        """Inicia un export asíncrono de dispatches. Retorna {jobid: ...}."""
        return await self._fetch("/dispatches/data_export/", params)

    async def get_async_job_status(self, job_id: str) -> Any:
        """Estado de un job asíncrono. Retorna {status, download_url?, error?}."""
        return await self._fetch("/sites/asyncjob_status/", {"jobid": job_id})

    async def test_connection(self) -> bool:
        """True si la API responde al listado de sites."""
        try:
            await self.get_sites()
            return True
        except L2LApiError as e:
            logger.error(f"Test de conexión L2L falló: {e.message}")
            return False

    async def download(self, url: str, destination: Path) -> Path:
        """
        Descarga (streaming) un archivo desde una URL absoluta.

        La URL de descarga de un export ya viene firmada por L2L, así que
        no se agrega `auth`. Si la descarga falla se borra el archivo parcial.
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self._http.stream("GET", url, timeout=self._timeout_s) as resp:
                if not resp.is_success:
                    raise L2LApiError(
                        f"Falla en la descarga. Status Code: {resp.status_code}",
                        url,
                        resp.status_code,
                    )
                with destination.open("wb") as fh:
                    async for chunk in resp.aiter_bytes():
                        fh.write(chunk)
        except Exception as e:
            destination.unlink(missing_ok=True)
            if isinstance(e, httpx.HTTPError):
                raise L2LApiError(f"Error descargando archivo: {e}", url) from e
            raise

        logger.info(f"Archivo descargado: {destination}")
        return destination

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    async def _fetch(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        GET + normalización del envelope.

        Retorna solo `data` ([] si viene vacío); `success: false` se
        convierte en L2LApiError con el `error` remoto.
        """
        resp = await self._request(endpoint, params)

        try:
            payload = resp.json()
        except ValueError as e:
            raise L2LApiError(
                f"Respuesta no JSON de {endpoint}", endpoint, resp.status_code
            ) from e

        if not isinstance(payload, dict):
            return payload if payload is not None else []

        if payload.get("success") is False:
            raise L2LApiError(
                payload.get("error") or "Error desconocido de la API L2L",
                endpoint,
                resp.status_code,
            )

        data = payload.get("data")
        return [] if data is None else data

    async def _request(self, endpoint: str, params: Optional[dict[str, Any]]) -> httpx.Response:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal).
        - timeout / conexión: error inmediato con status None.
        """
        url = self.build_url(endpoint, params)
        headers = {"Accept": "application/json"}

        for attempt in range(self._max_retries + 1):
            logger.debug(f"[L2L API] GET {endpoint}")
            try:
                resp = await self._http.get(url, headers=headers, timeout=self._timeout_s)
            except httpx.TimeoutException as e:
                raise L2LApiError(
                    f"Timeout ({self._timeout_s}s) al buscar {endpoint}", endpoint
                ) from e
            except httpx.HTTPError as e:
                raise L2LApiError(f"Error al buscar {endpoint}: {e}", endpoint) from e

            if 200 <= resp.status_code < 300:
                return resp

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise L2LApiError(
                        _error_text(resp, endpoint), endpoint, resp.status_code
                    )
                sleep_s = self._backoff_seconds(resp, attempt)
                logger.warning(
                    f"[L2L API] {endpoint} respondió {resp.status_code}; "
                    f"reintento {attempt + 1}/{self._max_retries} en {sleep_s:.1f}s"
                )
                await self._sleep(sleep_s)
                continue

            # Errores no recuperables
            raise L2LApiError(_error_text(resp, endpoint), endpoint, resp.status_code)

        # Inalcanzable: el loop siempre retorna o levanta
        raise L2LApiError(f"Sin respuesta de {endpoint}", endpoint)

    def _backoff_seconds(self, resp: httpx.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                return self._min_backoff_s
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)


def _error_text(resp: httpx.Response, endpoint: str) -> str:
    """Mensaje de error: `error` del body si existe, si no el status HTTP."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Error al buscar {endpoint}: HTTP {resp.status_code}"


def build_client_from_settings(settings: Settings, **overrides: Any) -> L2LClient:
    """
    Constructor "oficial" del cliente leyendo la configuración.

    Requeridas:
    - L2L_API_BASE_URL
    - L2L_API_KEY
    """
    if not settings.L2L_API_BASE_URL:
        raise SyncConfigError("Falta variable de entorno obligatoria: L2L_API_BASE_URL")
    if not settings.L2L_API_KEY:
        raise SyncConfigError("Falta variable de entorno obligatoria: L2L_API_KEY")

    options: dict[str, Any] = {
        "timeout_s": settings.L2L_TIMEOUT_SECONDS,
        "max_retries": settings.L2L_MAX_RETRIES,
        "list_limit": settings.L2L_LIST_LIMIT,
    }
    options.update(overrides)
    return L2LClient(
        L2LCredentials(base_url=settings.L2L_API_BASE_URL, api_key=settings.L2L_API_KEY),
        **options,
    )
