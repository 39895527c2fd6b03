"""
Tipos y utilidades puras para el pipeline L2L -> base local.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from kiosk_sync.shared.constants.sync_constants import SyncRunStatus


RemoteRecord = dict[str, Any]


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def as_remote_str(value: Any) -> Optional[str]:
    """
    Normaliza un identificador remoto a string.

    L2L mezcla ids numericos y codigos alfanumericos; en la base local
    siempre se guardan como texto. Vacio/None -> None.
    """
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def describe_record(record: RemoteRecord, position: int) -> str:
    """
    Referencia legible de un registro remoto para mensajes de error.

    Prioriza el id remoto; si falta, usa nombre/codigo; como ultimo
    recurso la posicion (1-based) dentro del lote.
    """
    for key in ("id", "code", "name"):
        value = as_remote_str(record.get(key)) if isinstance(record, dict) else None
        if value:
            return value
    return f"#{position}"


@dataclass
class SyncResult:
    """
    Resultado agregado de una reconciliacion.

    - success: False solo si fallo el fetch completo de algun scope
    - errors: mensajes por registro o por scope, en orden de ocurrencia
    - deactivated: siempre 0; el motor no desactiva filas
    """

    success: bool = True
    created: int = 0
    updated: int = 0
    deactivated: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "SyncResult") -> "SyncResult":
        """Acumula otro resultado (suma contadores, concatena errores, AND de success)."""
        self.created += other.created
        self.updated += other.updated
        self.deactivated += other.deactivated
        self.errors.extend(other.errors)
        if not other.success:
            self.success = False
        return self

    def fail(self, message: str) -> "SyncResult":
        """Marca el resultado como fallido registrando un error."""
        self.success = False
        self.errors.append(message)
        return self

    @property
    def status(self) -> SyncRunStatus:
        """
        Estado para el log de auditoria:
        error si success es False, partial si hay errores, success si no.
        """
        if not self.success:
            return SyncRunStatus.ERROR
        if self.errors:
            return SyncRunStatus.PARTIAL
        return SyncRunStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "created": self.created,
            "updated": self.updated,
            "deactivated": self.deactivated,
            "errors": list(self.errors),
        }
