"""
Tests de respaldo y exportación.
"""

import csv
import io
import json
import zipfile
from decimal import Decimal

from app.schemas.order import InternalNote
from app.schemas.part import PartCreate
from app.services.backup_service import BACKUP_VERSION, CSV_HEADERS, BackupService, order_csv_row
from app.services.part_service import part_service
from conftest import NOW, make_order


class TestCsvRow:

    def test_row_format(self):
        order = make_order(
            internal_notes=[InternalNote(text="Uno", date=NOW), InternalNote(text="Dos", date=NOW)],
        )

        row = order_csv_row(order)

        assert len(row) == len(CSV_HEADERS)
        assert row[0] == "ORD-202503-0001"
        assert row[1] == "10/03/2025"
        assert row[2] == "Recibido"
        assert row[16] == "Uno | Dos"


class TestBackupService:
    """Tests de BackupService con SQLite en memoria."""

    async def test_export_csv(self, db, store):
        """Test CSV con BOM, encabezados y comillas en campos con comas."""
        await store.save(db, make_order(problem_description='No enciende, "pantalla negra"'))
        service = BackupService(store)

        content = await service.export_csv(db)

        assert content.startswith("\ufeff")
        rows = list(csv.reader(io.StringIO(content.lstrip("\ufeff"))))
        assert rows[0] == CSV_HEADERS
        assert rows[1][11] == 'No enciende, "pantalla negra"'
        assert '"No enciende, ""pantalla negra"""' in content

    async def test_export_json(self, db, store):
        await store.save(db, make_order())
        await part_service.create(db, PartCreate(name="Pantalla", cost=Decimal("900"), stock=2))
        service = BackupService(store)

        data = json.loads(await service.export_json(db))

        assert data["version"] == BACKUP_VERSION
        assert "exportDate" in data
        assert data["orders"][0]["order_number"] == "ORD-202503-0001"
        assert data["parts"][0]["name"] == "Pantalla"
        assert data["settings"]["business_name"] == "Mi Taller"
        assert "admin_password" not in data["settings"]

    async def test_create_zip(self, db, store):
        await store.save(db, make_order())
        service = BackupService(store)

        content = await service.create_zip(db)

        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            names = set(zf.namelist())
            metadata = json.loads(zf.read("metadata.json"))
            orders = json.loads(zf.read("orders.json"))

        assert names == {
            "orders.json",
            "settings.json",
            "parts.json",
            "services.json",
            "categories.json",
            "metadata.json",
        }
        assert metadata["type"] == "full_backup"
        assert metadata["version"] == BACKUP_VERSION
        assert len(orders) == 1
