from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "school_transport")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a schema/seed script on ';' outside quotes; '--' line comments are dropped."""
    sql = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    buf: list[str] = []
    quote = ""
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue
        if ch == "\\":
            buf.append(ch)
            escape = True
            continue
        if ch in ("'", '"'):
            if not quote:
                quote = ch
            elif quote == ch:
                quote = ""
            buf.append(ch)
            continue
        if ch == ";" and not quote:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(db_config: dict, path: str | Path) -> None:
    target = _as_target(db_config)
    sql = _strip_create_db_and_use(Path(path).read_text(encoding="utf-8"))
    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _run_script(db_config, schema_path)
    logger.info("Schema applied from %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    _run_script(db_config, seed_path)
    logger.info("Seed applied from %s", seed_path)


def ensure_demo_users(db_config: dict, *, tenant_id: int = 1) -> list[str]:
    """Create (or reset) a tenant admin and a dispatcher for local development."""
    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)

        def upsert_user(username: str, email: str, password: str, role: str) -> None:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s AND tenant_id=%s", (username, tenant_id))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET email=%s, password_hash=%s, role=%s, is_active=1, failed_login_attempts=0, locked_until=NULL
                    WHERE username=%s AND tenant_id=%s
                    """,
                    (email, password_hash, role, username, tenant_id),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (tenant_id, username, email, password_hash, role)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (tenant_id, username, email, password_hash, role),
                )

        upsert_user("admin", "admin@rihla.local", "Admin@12345678", "tenant_admin")
        upsert_user("dispatcher", "dispatch@rihla.local", "Dispatch@12345", "dispatcher")
        conn.commit()
        return ["admin", "dispatcher"]
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


TENANT_TABLES = ("users", "students", "drivers", "vehicles", "routes", "route_stops", "trips", "payments")


def tenant_row_counts(db_config: dict, *, tenant_id: int) -> dict[str, int]:
    """Live (not soft-deleted) rows per table for one tenant."""
    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        counts = {}
        for table in TENANT_TABLES:
            cur.execute(f"SELECT COUNT(*) FROM {table} WHERE tenant_id=%s AND is_deleted=0", (tenant_id,))
            counts[table] = int(cur.fetchone()[0])
        return counts
    finally:
        conn.close()
