# backend/app/models/acl_override.py

from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AclOverride(Base):
    """
    Per-(tenant, user) permission delta, stored as JSON text under
    key "acl:user:<tenantId>:<userId>". One row per key.
    """

    __tablename__ = "acl_overrides"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_acl_overrides_tenant_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)

    # No FKs: overrides may be written before the membership row exists
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # {"add": [...], "remove": [...]}
    value: Mapped[str] = mapped_column(Text, nullable=False, default='{"add": [], "remove": []}')

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
