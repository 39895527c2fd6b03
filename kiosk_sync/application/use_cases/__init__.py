"""
Casos de uso de la aplicacion.
"""
from .l2l_sync_use_cases import L2LSyncUseCases

__all__ = ["L2LSyncUseCases"]
