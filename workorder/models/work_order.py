from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workorder.db.base import Base
from workorder.models.mixins import AuditMixin


class WorkOrder(AuditMixin, Base):
    """
    Work order header authored from an accepted proposal.
    Header fields are read-only for the editor; `updated_at` and
    `last_changed_by` track the latest edit of anything below it.
    """
    __tablename__ = "work_order"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    proposal_number: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    proposal_state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    job_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    job_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    original_proposal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    areas: Mapped[list["WorkOrderArea"]] = relationship(
        "WorkOrderArea",
        back_populates="work_order",
        cascade="all, delete-orphan",
    )


class WorkOrderArea(AuditMixin, Base):
    """Named grouping of line items (usually a room)."""
    __tablename__ = "work_order_area"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    work_order_id: Mapped[int] = mapped_column(
        ForeignKey("work_order.id"), nullable=False, index=True
    )
    area_name: Mapped[str] = mapped_column(String(200), nullable=False)
    custom_area_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    work_order: Mapped["WorkOrder"] = relationship("WorkOrder", back_populates="areas")
    line_items: Mapped[list["WorkOrderLineItem"]] = relationship(
        "WorkOrderLineItem",
        back_populates="area",
        cascade="all, delete-orphan",
    )


class WorkOrderLineItem(AuditMixin, Base):
    __tablename__ = "work_order_line_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    area_id: Mapped[int] = mapped_column(
        ForeignKey("work_order_area.id"), nullable=False, index=True
    )

    # Descriptive, read-only in the editor
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    item_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    product_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    sheen: Mapped[str | None] = mapped_column(String(50), nullable=True)
    color: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Editable
    prep_hours: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False, default=0)
    working_hours: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False, default=0)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    coat_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Values as authored on the proposal
    is_modified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_prep_hours: Mapped[Decimal | None] = mapped_column(Numeric(9, 4), nullable=True)
    original_working_hours: Mapped[Decimal | None] = mapped_column(Numeric(9, 4), nullable=True)
    original_unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    original_coat_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    area: Mapped["WorkOrderArea"] = relationship("WorkOrderArea", back_populates="line_items")

    def __repr__(self) -> str:
        return f"<WorkOrderLineItem(area_id={self.area_id}, id={self.id})>"
