"""
Constantes relacionadas con la sincronizacion L2L.
"""
from enum import Enum


class EntityStatus(str, Enum):
    """Estado de una entidad espejada (plant, line, station)."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class SyncRunStatus(str, Enum):
    """Estado derivado de una corrida de sincronizacion."""
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class SyncType(str, Enum):
    """Tipos de corrida registrados en el log de auditoria."""
    PLANTS = "plants"
    LINES = "lines"
    STATIONS = "machines"
    DOCUMENTS = "documents"
    ALL = "all"


class EntityKind(str, Enum):
    """Tipo de entidad reconciliada (se usa en mensajes de error)."""
    PLANT = "site"
    LINE = "line"
    STATION = "machine"
    DOCUMENT = "document"


class ExportJobState(str, Enum):
    """Estados del job de export asincrono."""
    STARTED = "started"
    POLLING = "polling"
    FINISHED = "finished"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


# Estados remotos del endpoint asyncjob_status
REMOTE_JOB_FINISHED = "finished"
REMOTE_JOB_FAILED = "failed"
