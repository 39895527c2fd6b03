"""
Excepciones relacionadas con la integración L2L y el mapeo de registros.
"""
from typing import Any, Dict, Optional

from kiosk_sync.shared.exceptions.base import AppException


class L2LApiError(AppException):
    """
    Error normalizado de la API L2L.

    Cubre tanto envelopes `success: false` como fallas de transporte
    (timeout, conexión, status HTTP no exitoso). `status` es None cuando
    no hubo respuesta HTTP.
    """

    def __init__(self, message: str, endpoint: str, status: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="L2L_API_ERROR",
            details={"endpoint": endpoint, "status": status}
        )
        self.endpoint = endpoint
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "endpoint": self.endpoint, "status": self.status}


class RecordMappingError(AppException):
    """Excepción cuando un registro remoto no se puede mapear a una fila local."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            status_code=422,
            error_code="RECORD_MAPPING_ERROR",
            details=details
        )


class SyncConfigError(AppException):
    """Error de configuración del motor (variables obligatorias ausentes)."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=500,
            error_code="SYNC_CONFIG_ERROR"
        )
