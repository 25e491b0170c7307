import asyncio
import sys
import os

# Añade backend/ al PYTHONPATH para importar app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.database import engine
from app.models import Base


async def reset():
    print("Conectando a la base de datos, eliminando tablas (órdenes, repuestos, catálogo, configuración)...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tablas eliminadas. Creando tablas nuevas...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print(f"Base de datos reiniciada: {len(Base.metadata.tables)} tablas creadas")


if __name__ == "__main__":
    asyncio.run(reset())
