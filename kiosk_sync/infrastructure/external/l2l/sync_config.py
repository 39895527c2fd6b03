"""
Configuración de reconciliación por tipo de entidad (L2L -> tabla local).

Aquí se declara, por entidad:
- modelo ORM destino
- cascada de estrategias de matching
- mapeo registro remoto -> columnas
- columna FK al padre (si aplica)

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from kiosk_sync.infrastructure.external.l2l.matching import MatchStrategy, RemoteKeys
from kiosk_sync.infrastructure.external.l2l.types import RemoteRecord
from kiosk_sync.shared.constants.sync_constants import EntityKind


@dataclass(frozen=True)
class EntitySyncConfig:
    """
    Config de una entidad L2L -> una tabla local.

    - map_record: retorna las columnas a escribir (sin FK al padre ni status);
      levanta RecordMappingError si falta un campo requerido
    - keys_for: claves candidatas para la cascada de matching
    - parent_column: FK que se fuerza al valor del padre en cada upsert
    """

    kind: EntityKind
    model: Any
    strategies: tuple[MatchStrategy, ...]
    map_record: Callable[[RemoteRecord], dict[str, Any]]
    keys_for: Callable[[RemoteRecord], RemoteKeys]
    parent_column: Optional[str] = None
