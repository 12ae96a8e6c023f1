from __future__ import annotations

from decimal import Decimal
import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("workorder.main").app
from workorder.db.base import Base
from workorder.db.session import get_db

# Ensure all models are registered with SQLAlchemy metadata
import workorder.models  # noqa: F401
from workorder.models.work_order import WorkOrder, WorkOrderArea, WorkOrderLineItem


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


def _line_item(
    item_id: int,
    name: str,
    prep: str,
    working: str,
    unit: str,
    coats: int,
    sort_order: int,
    **extra,
) -> WorkOrderLineItem:
    return WorkOrderLineItem(
        id=item_id,
        item_name=name,
        item_type=extra.pop("item_type", "Paint"),
        product_name=extra.pop("product_name", None),
        sheen=extra.pop("sheen", None),
        prep_hours=Decimal(prep),
        working_hours=Decimal(working),
        unit=unit,
        coat_count=coats,
        sort_order=sort_order,
        original_prep_hours=Decimal(prep),
        original_working_hours=Decimal(working),
        original_unit=unit,
        original_coat_count=coats,
        **extra,
    )


@pytest.fixture(scope="function")
def work_order_seed(db_session):
    """
    Work order 1:
      area 10 "Living Room" (rank 1): 101 Walls 2+6, 102 Ceiling 1+3
      area 20 "Kitchen"     (rank 2): 201 Cabinets 1.5+4.5, 202 Trim (deleted)
    Work order 2:
      area 30 "Garage": 301 Floor 1+1
    """
    first = WorkOrder(
        id=1,
        proposal_number="P-1001",
        proposal_state="Accepted",
        customer_name="Jane Homeowner",
        job_name="Interior Repaint",
        job_address="12 Elm St",
        original_proposal_id=501,
    )
    first.areas = [
        WorkOrderArea(
            id=10,
            area_name="Living Room",
            sort_order=1,
            line_items=[
                _line_item(
                    101, "Walls", "2", "6", "sqft", 2, 1,
                    product_name="ProMar 200", sheen="Eggshell",
                ),
                _line_item(102, "Ceiling", "1", "3", "sqft", 1, 2),
            ],
        ),
        WorkOrderArea(
            id=20,
            area_name="Kitchen",
            sort_order=2,
            line_items=[
                _line_item(201, "Cabinets", "1.5", "4.5", "ea", 2, 1),
                _line_item(202, "Trim", "0.5", "1.25", "lf", 1, 2, is_deleted=True),
            ],
        ),
    ]
    second = WorkOrder(id=2, proposal_number="P-1002", customer_name="Other Customer")
    second.areas = [
        WorkOrderArea(
            id=30,
            area_name="Garage",
            sort_order=1,
            line_items=[_line_item(301, "Floor", "1", "1", "sqft", 1, 1)],
        )
    ]
    db_session.add_all([first, second])
    db_session.commit()
    return first


@pytest.fixture(scope="function")
def edit_view():
    """The same tree as `work_order_seed`, as the editor receives it."""
    from workorder.schemas.work_order import AreaOut, LineItemOut, WorkOrderEditOut

    def item(item_id, area_id, name, prep, working, unit, coats, sort_order, **extra):
        return LineItemOut(
            line_item_id=item_id,
            area_id=area_id,
            item_name=name,
            prep_hours=Decimal(prep),
            working_hours=Decimal(working),
            total_hours=Decimal(prep) + Decimal(working),
            unit=unit,
            coat_count=coats,
            sort_order=sort_order,
            **extra,
        )

    return WorkOrderEditOut(
        work_order_id=1,
        proposal_number="P-1001",
        customer_name="Jane Homeowner",
        job_name="Interior Repaint",
        areas=[
            AreaOut(
                area_id=20,
                area_name="Kitchen",
                sort_order=2,
                line_items=[
                    item(202, 20, "Trim", "0.5", "1.25", "lf", 1, 2, is_deleted=True),
                    item(201, 20, "Cabinets", "1.5", "4.5", "ea", 2, 1),
                ],
            ),
            AreaOut(
                area_id=10,
                area_name="Living Room",
                sort_order=1,
                line_items=[
                    item(
                        101, 10, "Walls", "2", "6", "sqft", 2, 1,
                        product_name="ProMar 200", sheen="Eggshell",
                    ),
                    item(102, 10, "Ceiling", "1", "3", "sqft", 1, 2),
                ],
            ),
        ],
    )
