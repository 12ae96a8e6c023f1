"""
Seed a demo work order for trying the editor against a local API.

Rows seeded:
  - work_order            (id 1)
  - work_order_area       (Living Room, Kitchen, Primary Bedroom)
  - work_order_line_item  (original_* snapshots equal the authored values)

Existing rows with the same ids are overwritten, so the script can be re-run
to reset the demo data.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from workorder.db.session import SessionLocal
from workorder.models.work_order import WorkOrder, WorkOrderArea, WorkOrderLineItem


def _upsert_by_id(
    db: Session,
    model: Any,
    row_id: int,
    data: dict[str, Any],
    new_objects: list[Any],
) -> None:
    obj = db.get(model, row_id)
    if obj:
        for key, value in data.items():
            setattr(obj, key, value)
        return
    obj = model(id=row_id, **data)
    new_objects.append(obj)


def _line_item_data(area_id: int, row: dict[str, Any]) -> dict[str, Any]:
    prep = Decimal(row["prep_hours"])
    working = Decimal(row["working_hours"])
    return {
        "area_id": area_id,
        "item_name": row["item_name"],
        "item_type": row.get("item_type", "Paint"),
        "product_name": row.get("product_name"),
        "sheen": row.get("sheen"),
        "color": row.get("color"),
        "prep_hours": prep,
        "working_hours": working,
        "unit": row["unit"],
        "coat_count": row["coat_count"],
        "sort_order": row["sort_order"],
        "is_deleted": False,
        "deleted_at": None,
        "deleted_by": None,
        "is_modified": False,
        "original_prep_hours": prep,
        "original_working_hours": working,
        "original_unit": row["unit"],
        "original_coat_count": row["coat_count"],
    }


def seed() -> None:
    db = SessionLocal()
    try:
        new_objects: list[Any] = []

        _upsert_by_id(
            db,
            WorkOrder,
            1,
            {
                "proposal_number": "P-1001",
                "proposal_state": "Accepted",
                "customer_name": "Jane Homeowner",
                "job_name": "Interior Repaint",
                "job_address": "12 Elm St, Springfield",
                "original_proposal_id": 501,
            },
            new_objects,
        )

        areas = [
            {"id": 10, "area_name": "Living Room", "sort_order": 1},
            {"id": 20, "area_name": "Kitchen", "sort_order": 2},
            {"id": 30, "area_name": "Primary Bedroom", "sort_order": 3},
        ]
        for row in areas:
            _upsert_by_id(
                db,
                WorkOrderArea,
                row["id"],
                {
                    "work_order_id": 1,
                    "area_name": row["area_name"],
                    "custom_area_name": None,
                    "sort_order": row["sort_order"],
                },
                new_objects,
            )

        # Parents first so the line item foreign keys resolve.
        if new_objects:
            db.add_all(new_objects)
            db.flush()
            new_objects = []

        line_items = [
            (10, {"id": 101, "item_name": "Walls", "product_name": "ProMar 200",
                  "sheen": "Eggshell", "color": "Agreeable Gray", "prep_hours": "2",
                  "working_hours": "6", "unit": "sqft", "coat_count": 2, "sort_order": 1}),
            (10, {"id": 102, "item_name": "Ceiling", "product_name": "ProMar 400",
                  "sheen": "Flat", "prep_hours": "1", "working_hours": "3",
                  "unit": "sqft", "coat_count": 1, "sort_order": 2}),
            (20, {"id": 201, "item_name": "Cabinets", "product_name": "Emerald Urethane",
                  "sheen": "Satin", "prep_hours": "1.5", "working_hours": "4.5",
                  "unit": "ea", "coat_count": 2, "sort_order": 1}),
            (20, {"id": 202, "item_name": "Trim", "item_type": "Trim",
                  "product_name": "ProClassic", "sheen": "Semi-Gloss",
                  "prep_hours": "0.5", "working_hours": "1.25", "unit": "lf",
                  "coat_count": 1, "sort_order": 2}),
            (30, {"id": 301, "item_name": "Walls", "product_name": "Duration Home",
                  "sheen": "Matte", "prep_hours": "1.5", "working_hours": "5",
                  "unit": "sqft", "coat_count": 2, "sort_order": 1}),
        ]
        for area_id, row in line_items:
            _upsert_by_id(
                db,
                WorkOrderLineItem,
                row["id"],
                _line_item_data(area_id, row),
                new_objects,
            )

        if new_objects:
            db.add_all(new_objects)
        db.commit()
        print("Seed completed.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
