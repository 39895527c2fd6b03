"""
CLI: L2L -> base local (sincronización espejo).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) o a demanda por un operador.
  - Cada comando de sync registra una fila en l2l_sync_logs.

Variables de entorno requeridas:
  - L2L_API_BASE_URL
  - L2L_API_KEY
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)

Ejecución:
  python scripts/l2l_sync.py all --user operador
  python scripts/l2l_sync.py stations
  python scripts/l2l_sync.py logs --limit 20
  python scripts/l2l_sync.py export --target 82195 --site 902 --since "2026-01-01 00:00:00"
  python scripts/l2l_sync.py test-connection
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

load_dotenv(_REPO_ROOT / ".env", override=False)

from kiosk_sync.application.dto.sync_dto import SyncResultDTO
from kiosk_sync.application.use_cases.l2l_sync_use_cases import L2LSyncUseCases
from kiosk_sync.core.config import settings
from kiosk_sync.core.logging import configure_logging
from kiosk_sync.infrastructure.database.session import (
    close_db,
    create_engine_for,
    create_session_factory,
    init_db,
)
from kiosk_sync.infrastructure.external.l2l.export_poller import ExportJobPoller
from kiosk_sync.infrastructure.external.l2l.l2l_client import build_client_from_settings
from kiosk_sync.infrastructure.repositories.sync_log_repository import SyncLogRepository
from kiosk_sync.shared.exceptions.domain import SyncConfigError


SYNC_COMMANDS = ("plants", "lines", "stations", "documents", "all")


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincronización L2L -> base local")
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Crea las tablas antes de ejecutar (entornos de desarrollo).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name in SYNC_COMMANDS:
        cmd = sub.add_parser(name, help=f"Sincroniza {name}")
        cmd.add_argument("--user", default=None, help="Usuario registrado en el log (synced_by)")

    logs = sub.add_parser("logs", help="Lista las últimas corridas registradas")
    logs.add_argument("--limit", type=int, default=settings.SYNC_LOG_LIMIT)

    export = sub.add_parser("export", help="Export asíncrono de dispatches + búsqueda de un registro")
    export.add_argument("--target", required=True, help="dispatchnumber o id buscado")
    export.add_argument("--site", default=None, help="Site ID de L2L")
    export.add_argument("--since", default=None, help='lastupdated_since, ej: "2026-01-01 00:00:00"')
    export.add_argument("--output-dir", default=settings.EXPORT_DOWNLOAD_DIR)

    sub.add_parser("test-connection", help="Verifica credenciales y conectividad con L2L")
    return parser


async def _run_sync(command: str, user: str | None, init: bool) -> int:
    engine = create_engine_for()
    try:
        if init:
            await init_db(engine)
        session_factory = create_session_factory(engine)
        async with build_client_from_settings(settings) as client:
            async with session_factory() as session:
                use_cases = L2LSyncUseCases(session, client)
                operation = getattr(use_cases, f"sync_{command}")
                result = await operation(user_id=user)
        _print_json(SyncResultDTO.from_result(result).model_dump())
        return 0 if result.success else 1
    finally:
        await close_db(engine)


async def _run_logs(limit: int, init: bool) -> int:
    engine = create_engine_for()
    try:
        if init:
            await init_db(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            runs = await SyncLogRepository(session).list_recent(limit)
        _print_json([run.model_dump(mode="json") for run in runs])
        return 0
    finally:
        await close_db(engine)


async def _run_export(target: str, site: str | None, since: str | None, output_dir: str) -> int:
    params = {"site": site, "lastupdated_since": since}
    async with build_client_from_settings(settings) as client:
        poller = ExportJobPoller(
            client,
            poll_interval_s=settings.EXPORT_POLL_INTERVAL_SECONDS,
            max_attempts=settings.EXPORT_MAX_POLL_ATTEMPTS,
        )
        found = await poller.fetch_and_find(target, Path(output_dir), **params)

    _print_json({
        "job_id": found.job.job_id,
        "state": found.job.state.value,
        "attempts": found.job.attempts,
        "file": str(found.file_path) if found.file_path else None,
        "found": found.found,
        "attachment_url": found.attachment_url,
        "errors": found.errors,
    })
    return 0 if found.found else 1


async def _run_test_connection() -> int:
    async with build_client_from_settings(settings) as client:
        ok = await client.test_connection()
    if ok:
        logger.success("Conexión con L2L OK")
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        if args.command in SYNC_COMMANDS:
            return asyncio.run(_run_sync(args.command, args.user, args.init_db))
        if args.command == "logs":
            return asyncio.run(_run_logs(args.limit, args.init_db))
        if args.command == "export":
            return asyncio.run(_run_export(args.target, args.site, args.since, args.output_dir))
        return asyncio.run(_run_test_connection())
    except SyncConfigError as e:
        raise SystemExit(e.message)


if __name__ == "__main__":
    raise SystemExit(main())
