"""
API v1 Routes
Proyecto: Taller Manager (Gestión de Taller)

Router versión 1 de la API.
"""

from fastapi import APIRouter

from app.api.v1 import auth, backup, catalog, notifications, orders, parts, portal, settings

# Router agregado para v1
api_v1_router = APIRouter(prefix="/api/v1")

# Routers de los módulos
api_v1_router.include_router(auth.router)
api_v1_router.include_router(orders.router)
api_v1_router.include_router(portal.router)
api_v1_router.include_router(parts.router)
api_v1_router.include_router(catalog.router)
api_v1_router.include_router(catalog.categories_router)
api_v1_router.include_router(settings.router)
api_v1_router.include_router(notifications.router)
api_v1_router.include_router(backup.router)

__all__ = ["api_v1_router"]
