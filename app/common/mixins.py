"""
Common mixins for multi-tenant models
"""
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Uuid

from app.common.ids import new_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdMixin:
    """Primary key con UUID ordenable en el tiempo"""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=new_id)


class TenantMixin:
    """Mixin for multi-tenant models that adds tenant_id and ensures tenant isolation"""

    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
