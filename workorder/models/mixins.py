from datetime import datetime

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

SYSTEM_ACTOR = "System"


class AuditMixin:
    """Creation/change stamps shared by the work order tables."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=SYSTEM_ACTOR,
        server_default=text(f"'{SYSTEM_ACTOR}'"),
    )
    last_changed_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=SYSTEM_ACTOR,
        server_default=text(f"'{SYSTEM_ACTOR}'"),
    )

    def stamp(self, actor: str, at: datetime | None = None) -> None:
        """Record `actor` as the last writer of this row."""
        self.last_changed_by = actor
        self.updated_at = at or datetime.utcnow()
