"""create work order, area and line item tables

Revision ID: 3e5a7c9b1d2f
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3e5a7c9b1d2f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "created_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'System'"),
        ),
        sa.Column(
            "last_changed_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'System'"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "work_order",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("proposal_number", sa.String(length=50), nullable=True),
        sa.Column("proposal_state", sa.String(length=50), nullable=True),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("job_name", sa.String(length=200), nullable=True),
        sa.Column("job_address", sa.String(length=500), nullable=True),
        sa.Column("original_proposal_id", sa.Integer(), nullable=True),
        *_audit_columns(),
    )
    op.create_index(
        "ix_work_order_proposal_number",
        "work_order",
        ["proposal_number"],
        unique=False,
    )

    op.create_table(
        "work_order_area",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "work_order_id",
            sa.Integer(),
            sa.ForeignKey("work_order.id"),
            nullable=False,
        ),
        sa.Column("area_name", sa.String(length=200), nullable=False),
        sa.Column("custom_area_name", sa.String(length=200), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_audit_columns(),
    )
    op.create_index(
        "ix_work_order_area_work_order_id",
        "work_order_area",
        ["work_order_id"],
        unique=False,
    )

    op.create_table(
        "work_order_line_item",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "area_id",
            sa.Integer(),
            sa.ForeignKey("work_order_area.id"),
            nullable=False,
        ),
        sa.Column("item_name", sa.String(length=200), nullable=False),
        sa.Column("item_type", sa.String(length=100), nullable=True),
        sa.Column("product_name", sa.String(length=500), nullable=True),
        sa.Column("sheen", sa.String(length=50), nullable=True),
        sa.Column("color", sa.String(length=100), nullable=True),
        sa.Column("prep_hours", sa.Numeric(9, 4), nullable=False, server_default="0"),
        sa.Column("working_hours", sa.Numeric(9, 4), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(length=50), nullable=True),
        sa.Column("coat_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "is_deleted",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.Column(
            "is_modified",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("original_prep_hours", sa.Numeric(9, 4), nullable=True),
        sa.Column("original_working_hours", sa.Numeric(9, 4), nullable=True),
        sa.Column("original_unit", sa.String(length=50), nullable=True),
        sa.Column("original_coat_count", sa.Integer(), nullable=True),
        *_audit_columns(),
    )
    op.create_index(
        "ix_work_order_line_item_area_id",
        "work_order_line_item",
        ["area_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_work_order_line_item_area_id", table_name="work_order_line_item")
    op.drop_table("work_order_line_item")
    op.drop_index("ix_work_order_area_work_order_id", table_name="work_order_area")
    op.drop_table("work_order_area")
    op.drop_index("ix_work_order_proposal_number", table_name="work_order")
    op.drop_table("work_order")
