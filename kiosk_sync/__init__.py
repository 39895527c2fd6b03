"""
Motor de sincronización espejo L2L (Leading2Lean) -> base local del kiosk.
"""

__version__ = "1.0.0"
