"""
DTOs de la sincronización L2L.
Definen la forma JSON que reciben los callers externos (endpoints REST, CLI).
"""
import json
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from kiosk_sync.infrastructure.external.l2l.types import SyncResult
from kiosk_sync.shared.constants.sync_constants import SyncRunStatus


class SyncResultDTO(BaseModel):
    """DTO de respuesta de una corrida de sincronización."""

    success: bool = Field(..., description="False si falló el fetch completo de algún scope")
    created: int = Field(0, ge=0, description="Filas creadas")
    updated: int = Field(0, ge=0, description="Filas actualizadas")
    deactivated: int = Field(0, ge=0, description="Filas desactivadas (siempre 0)")
    errors: List[str] = Field(default_factory=list, description="Errores por registro o scope")

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultDTO":
        return cls(**result.to_dict())


class SyncRunDTO(BaseModel):
    """DTO de una entrada del log de sincronización."""

    id: int
    sync_type: str
    status: SyncRunStatus
    records_created: int = 0
    records_updated: int = 0
    records_deactivated: int = 0
    errors: List[str] = Field(default_factory=list)
    synced_by: Optional[str] = None
    synced_at: Optional[datetime] = None

    @field_validator("errors", mode="before")
    @classmethod
    def decode_errors(cls, value):
        """La columna guarda la lista serializada como texto JSON."""
        if value is None or value == "":
            return []
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                return [value]
            return decoded if isinstance(decoded, list) else [str(decoded)]
        return value

    class Config:
        """Configuración de Pydantic."""
        from_attributes = True
