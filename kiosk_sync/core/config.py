"""
Configuracion central del motor de sincronizacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion del motor.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos principales:
    - Base de datos: DATABASE_URL completa o por componentes
    - API L2L: URL base, API key y limites de requests
    - Export asincrono: intervalo y presupuesto de polling
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Kiosk L2L Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="kiosk_user")
    DATABASE_PASSWORD: str = Field(default="kiosk_pass")
    DATABASE_NAME: str = Field(default="kiosk_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # API L2L (solo GET, auth por query string)
    L2L_API_BASE_URL: str = Field(default="")
    L2L_API_KEY: str = Field(default="")
    L2L_TIMEOUT_SECONDS: float = Field(default=30.0)
    # Reintentos solo para 429/5xx; el resto de errores falla inmediatamente
    L2L_MAX_RETRIES: int = Field(default=2)
    L2L_LIST_LIMIT: int = Field(default=1000)

    # Documentos: categoria remota "Work Instruction"
    L2L_DOCUMENT_CATEGORY_ID: str = Field(default="776")
    L2L_DOCUMENT_CATEGORY_NAME: str = Field(default="Work Instruction")

    # Export asincrono de dispatches
    EXPORT_POLL_INTERVAL_SECONDS: float = Field(default=5.0)
    EXPORT_MAX_POLL_ATTEMPTS: int = Field(default=20)
    EXPORT_DOWNLOAD_DIR: str = Field(default="exports")

    # Logs de sincronizacion
    SYNC_LOG_LIMIT: int = Field(default=50)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/l2l_sync.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


# Instancia global de configuracion
settings = Settings()
