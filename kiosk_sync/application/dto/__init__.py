"""
DTOs de la aplicacion.
"""
from .sync_dto import SyncResultDTO, SyncRunDTO

__all__ = ["SyncResultDTO", "SyncRunDTO"]
