"""
Modelos de base de datos (ORM) del espejo local de L2L.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from kiosk_sync.infrastructure.database.session import Base
from kiosk_sync.shared.constants.sync_constants import EntityStatus


class PlantModel(Base):
    """
    Modelo de base de datos para plantas.

    `external_id` guarda el Site ID de L2L. Puede ser NULL para plantas
    cargadas a mano que todavia no se vincularon con un site remoto.
    """

    __tablename__ = "plants"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(100), nullable=True, unique=True)
    name = Column(String(200), nullable=False, index=True)
    location = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default=EntityStatus.ACTIVE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Plant(id={self.id}, name={self.name}, external_id={self.external_id})>"


class LineModel(Base):
    """
    Modelo de base de datos para lineas de produccion.

    Identificadores remotos:
    - id_l2l: ID numerico de L2L (clave principal de matching y filtro de /machines/)
    - external_id: codigo alfanumerico de L2L. Filas legacy pueden tener aqui
      el ID numerico, por eso no es UNIQUE.
    """

    __tablename__ = "production_lines"

    id = Column(Integer, primary_key=True, index=True)
    plant_id = Column(Integer, ForeignKey("plants.id"), nullable=False, index=True)
    id_l2l = Column(String(50), nullable=True, unique=True)
    external_id = Column(String(100), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default=EntityStatus.ACTIVE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Line(id={self.id}, name={self.name}, id_l2l={self.id_l2l})>"


class StationModel(Base):
    """
    Modelo de base de datos para estaciones (machines en L2L).

    - station_id: ID numerico de L2L
    - external_id: codigo alfanumerico de L2L (clave para asociar documentos)
    """

    __tablename__ = "work_stations"

    id = Column(Integer, primary_key=True, index=True)
    line_id = Column(Integer, ForeignKey("production_lines.id"), nullable=False, index=True)
    station_id = Column(String(50), nullable=True, unique=True)
    external_id = Column(String(100), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=EntityStatus.ACTIVE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Station(id={self.id}, name={self.name}, station_id={self.station_id})>"


class DocumentModel(Base):
    """
    Modelo de base de datos para documentos de estacion.

    Slot unico por (station_id, category): solo se conserva el documento
    mas reciente de cada categoria, no un historial.
    """

    __tablename__ = "line_documents"
    __table_args__ = (
        UniqueConstraint("station_id", "category", name="uq_line_documents_station_category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    station_id = Column(Integer, ForeignKey("work_stations.id"), nullable=False, index=True)
    line_id = Column(Integer, ForeignKey("production_lines.id"), nullable=True, index=True)
    category = Column(String(100), nullable=False)
    external_id = Column(String(100), nullable=True)  # ID del documento en L2L
    title = Column(String(500), nullable=False)
    document_url = Column(Text, nullable=False, default="")
    view_info_url = Column(Text, nullable=True)
    version = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Document(id={self.id}, station_id={self.station_id}, category={self.category})>"


class SyncRunModel(Base):
    """
    Log de auditoria: una fila por invocacion de sincronizacion.
    Tabla append-only.
    """

    __tablename__ = "l2l_sync_logs"

    id = Column(Integer, primary_key=True, index=True)
    sync_type = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    records_created = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_deactivated = Column(Integer, nullable=False, default=0)
    errors = Column(Text, nullable=True)  # Lista de errores serializada en JSON
    synced_by = Column(String(64), nullable=True)
    synced_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<SyncRun(id={self.id}, sync_type={self.sync_type}, status={self.status})>"
