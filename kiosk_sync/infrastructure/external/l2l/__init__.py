"""
Pipeline de sincronización one-way: L2L -> base local.

Objetivos de diseño:
- Idempotencia: se puede ejecutar N veces sin duplicar filas.
- Orden de dependencias: site -> line -> machine -> document.
- Aislamiento: un registro con error no aborta el lote.
- Solo GET contra la API remota.
"""
