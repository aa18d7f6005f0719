from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from mysql.connector import pooling

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = 5

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "DBConfig":
        return cls(
            host=str(raw["host"]),
            port=int(raw.get("port", 3306)),
            user=str(raw["user"]),
            password=str(raw.get("password", "")),
            database=str(raw["database"]),
            pool_size=int(raw.get("pool_size", 5)),
        )


class DatabaseConnection:
    """Process-wide pooled connection source.

    The app is served threaded (SSE streams hold a worker), so each repository
    call borrows a pooled connection and returns it on close().
    """

    _instance: Optional["DatabaseConnection"] = None
    _lock = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._lock:
            if cls._instance is None or cls._instance._config != config:
                cls._instance = DatabaseConnection(config)
            return cls._instance

    @property
    def database(self) -> str:
        return self._config.database

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        with self._lock:
            if self._pool is None:
                logger.info(
                    "Opening MySQL pool %s@%s:%s/%s (size=%d)",
                    self._config.user,
                    self._config.host,
                    self._config.port,
                    self._config.database,
                    self._config.pool_size,
                )
                self._pool = pooling.MySQLConnectionPool(
                    pool_name=f"school_transport_{self._config.database}",
                    pool_size=self._config.pool_size,
                    host=self._config.host,
                    port=self._config.port,
                    user=self._config.user,
                    password=self._config.password,
                    database=self._config.database,
                )
            return self._pool

    def connect(self):
        return self._get_pool().get_connection()
