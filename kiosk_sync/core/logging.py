"""
Configuracion de logging (loguru) para el motor y los scripts.
"""
from loguru import logger

from kiosk_sync.core.config import settings


_configured: bool = False


def configure_logging(log_file: str | None = None, level: str | None = None) -> None:
    """
    Agrega el sink de archivo una sola vez por proceso.

    Args:
        log_file: Ruta del archivo de log (default: settings.LOG_FILE)
        level: Nivel minimo (default: settings.LOG_LEVEL)
    """
    global _configured
    if _configured:
        return

    logger.add(
        log_file or settings.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=level or settings.LOG_LEVEL,
    )
    _configured = True
    logger.debug("Logging de archivo configurado")
