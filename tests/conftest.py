"""
Configuración de fixtures para pytest.
"""
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from kiosk_sync.infrastructure.database.session import Base
from kiosk_sync.infrastructure.database import models  # noqa: F401
from kiosk_sync.shared.exceptions.domain import L2LApiError


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que proporciona una sesión de base de datos para tests.
    Crea una base de datos en memoria para cada test.
    """
    # StaticPool: todas las conexiones comparten la misma base en memoria
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


class FakeL2LClient:
    """
    Cliente L2L guionado para tests.

    Cada colección puede contener una lista (respuesta) o una excepción
    (se levanta al consultarla). `calls` registra (método, argumento).
    """

    def __init__(self) -> None:
        self.sites: Any = []
        self.lines: Dict[str, Any] = {}
        self.machines: Dict[str, Any] = {}
        self.documents: Dict[str, Any] = {}
        self.view_info: Dict[str, Any] = {}
        self.calls: List[tuple] = []

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    async def get_sites(self) -> Any:
        self.calls.append(("sites", None))
        return self._answer(self.sites)

    async def get_lines(self, site_id: Optional[str] = None) -> Any:
        self.calls.append(("lines", site_id))
        return self._answer(self.lines.get(site_id, []))

    async def get_machines(self, line_id: Optional[str] = None) -> Any:
        self.calls.append(("machines", line_id))
        return self._answer(self.machines.get(line_id, []))

    async def get_documents_by_category(
        self, site_id: str, category_id: str, external_id: Optional[str] = None
    ) -> Any:
        self.calls.append(("documents", site_id))
        return self._answer(self.documents.get(site_id, []))

    async def get_document_view_info(self, document_id: str, site_id: str) -> Any:
        self.calls.append(("viewinfo", document_id))
        if document_id not in self.view_info:
            raise L2LApiError("Documento no encontrado", f"/documents/viewinfo/{document_id}/", 404)
        return self._answer(self.view_info[document_id])

    def calls_to(self, method: str) -> List[Any]:
        return [arg for name, arg in self.calls if name == method]


@pytest.fixture
def fake_client() -> FakeL2LClient:
    return FakeL2LClient()
