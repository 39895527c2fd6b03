"""
Ejecutor serial para corridas de sincronización.

Las corridas top-level (sync de plantas, líneas, estaciones, documentos o
"all") se ejecutan de a una por proceso: si llega una segunda mientras otra
está en curso, espera su turno en orden de llegada (asyncio.Lock es FIFO).

Entre procesos, los UNIQUE de la base evitan la doble creación.

Uso:
    from kiosk_sync.infrastructure.executor.serial_executor import sync_executor

    result = await sync_executor.run(use_cases._run_plants)
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger


T = TypeVar("T")


class SerialExecutor:
    """
    Serializa coroutines bajo un único lock.

    El lock se crea lazy porque asyncio.Lock debe crearse dentro de un
    contexto con event loop activo; si cambia el loop (tests) se recrea.
    """

    def __init__(self, name: str = "sync") -> None:
        self.name = name
        self._lock: Optional[asyncio.Lock] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending = 0
        self._completed = 0
        self._failed = 0

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop
            logger.debug(f"Lock del executor '{self.name}' creado")
        return self._lock

    @property
    def pending(self) -> int:
        """Corridas esperando o en ejecución."""
        return self._pending

    @property
    def busy(self) -> bool:
        return self._lock is not None and self._lock.locked()

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Ejecuta `func(*args, **kwargs)` con acceso exclusivo.

        Args:
            func: Función async a ejecutar
            *args: Argumentos posicionales
            **kwargs: Argumentos con nombre

        Returns:
            El resultado de la función

        Raises:
            Cualquier excepción que la función lance
        """
        lock = self._get_lock()
        self._pending += 1
        if lock.locked():
            logger.info(
                f"Executor '{self.name}' ocupado; corrida en cola (pendientes: {self._pending})"
            )
        try:
            async with lock:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    self._failed += 1
                    logger.error(f"Error en corrida serial '{self.name}': {type(e).__name__}: {e}")
                    raise
                self._completed += 1
                return result
        finally:
            self._pending -= 1

    def stats(self) -> dict:
        """Estadísticas del executor, útil para monitoreo y debugging."""
        return {
            "name": self.name,
            "pending": self._pending,
            "busy": self.busy,
            "completed": self._completed,
            "failed": self._failed,
        }


# Executor compartido por todos los orquestadores del proceso
sync_executor = SerialExecutor("l2l-sync")
