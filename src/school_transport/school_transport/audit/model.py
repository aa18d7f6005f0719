from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AuditLog:
    """Append-only security/audit event."""

    audit_id: int
    tenant_id: int
    user_id: Optional[int]
    email: Optional[str]
    action: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    success: bool
    details: Optional[str]
    created_at: datetime
