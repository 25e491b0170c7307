"""
API Routes
Proyecto: Taller Manager (Gestión de Taller)

Módulo de agregación de los routers versionados.
"""

from app.api.v1 import api_v1_router

__all__ = ["api_v1_router"]
