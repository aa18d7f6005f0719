"""Create the school_transport tables (idempotent) and list what exists."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.school_transport.school_transport.database.bootstrap import (
    TENANT_TABLES,
    apply_schema,
    list_tables,
)


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = set(list_tables(db_config))
    missing = [t for t in TENANT_TABLES if t not in tables]

    print(f"Schema applied to {db_config.get('database')} on {db_config.get('host')}: {len(tables)} tables")
    if missing:
        print(f"Missing tenant tables: {', '.join(missing)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
