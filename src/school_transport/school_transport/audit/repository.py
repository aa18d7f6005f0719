from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AuditLog


class AuditLogRepository(Protocol):
    def add(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int],
        email: Optional[str],
        action: str,
        ip_address: Optional[str],
        user_agent: Optional[str],
        success: bool,
        details: Optional[str],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def search(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int] = None,
        actions: Optional[Sequence[str]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[AuditLog], int]:
        raise NotImplementedError
