"""
Excepciones del motor.
"""
from .base import AppException
from .domain import L2LApiError, RecordMappingError, SyncConfigError

__all__ = ["AppException", "L2LApiError", "RecordMappingError", "SyncConfigError"]
