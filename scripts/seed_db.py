"""Load the demo tenant (drivers, vehicles, a route with stops) and its staff logins."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.school_transport.school_transport.database.bootstrap import (
    apply_seed_sql,
    ensure_demo_users,
    tenant_row_counts,
)


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    tenant_id = int(getattr(settings, "DEFAULT_TENANT_ID", 1))

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    usernames = ensure_demo_users(db_config, tenant_id=tenant_id)

    print(f"Tenant {tenant_id} demo logins: {', '.join(usernames)}")
    for table, count in tenant_row_counts(db_config, tenant_id=tenant_id).items():
        print(f"  {table:<12} {count}")


if __name__ == "__main__":
    main()
