from __future__ import annotations

from decimal import Decimal

from workorder.models.work_order import WorkOrder, WorkOrderArea, WorkOrderLineItem

BASE = "/api/v1/work-orders"
HEADERS = {"X-User-Email": "Painter@Example.com"}


def _save_payload(**overrides):
    payload = {
        "work_order_id": 1,
        "areas": [
            {
                "area_id": 20,
                "custom_area_name": "Galley Kitchen",
                "sort_order": 1,
                "line_items": [
                    {
                        "line_item_id": 201,
                        "prep_hours": "2",
                        "working_hours": "4.5",
                        "unit": "ea",
                        "coat_count": 3,
                        "sort_order": 1,
                        "is_deleted": False,
                    },
                    {
                        "line_item_id": 202,
                        "prep_hours": "0.5",
                        "working_hours": "1.25",
                        "unit": "lf",
                        "coat_count": 1,
                        "sort_order": 2,
                        "is_deleted": False,
                    },
                ],
            },
            {
                "area_id": 10,
                "custom_area_name": None,
                "sort_order": 2,
                "line_items": [
                    {
                        "line_item_id": 101,
                        "prep_hours": "2",
                        "working_hours": "6",
                        "unit": "sqft",
                        "coat_count": 2,
                        "sort_order": 1,
                        "is_deleted": False,
                    },
                    {
                        "line_item_id": 102,
                        "prep_hours": "1",
                        "working_hours": "3",
                        "unit": "sqft",
                        "coat_count": 1,
                        "sort_order": 2,
                        "is_deleted": True,
                    },
                ],
            },
        ],
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get("/health").json() == {"status": "up"}


def test_load_for_edit_returns_ordered_tree(client, work_order_seed):
    response = client.get(f"{BASE}/1/edit")

    assert response.status_code == 200
    body = response.json()
    assert body["work_order_id"] == 1
    assert body["customer_name"] == "Jane Homeowner"
    assert [area["area_id"] for area in body["areas"]] == [10, 20]
    kitchen = body["areas"][1]
    assert [item["line_item_id"] for item in kitchen["line_items"]] == [201, 202]
    trim = kitchen["line_items"][1]
    assert trim["is_deleted"] is True
    assert Decimal(trim["original_working_hours"]) == Decimal("1.25")


def test_load_for_edit_unknown_work_order(client, work_order_seed):
    response = client.get(f"{BASE}/999/edit")
    assert response.status_code == 404


def test_totals_exclude_deleted_items(client, work_order_seed):
    body = client.get(f"{BASE}/1/totals", params={"area_id": 20}).json()

    assert body["success"] is True
    totals = body["totals"]
    assert Decimal(totals["area_prep_hours"]) == Decimal("1.5")
    assert Decimal(totals["area_total_hours"]) == Decimal("6")
    assert Decimal(totals["grand_working_hours"]) == Decimal("13.5")
    assert Decimal(totals["grand_total_hours"]) == Decimal("18")


def test_totals_for_area_of_other_work_order_is_rejected(client, work_order_seed):
    body = client.get(f"{BASE}/1/totals", params={"area_id": 30}).json()

    assert body["success"] is False
    assert body["message"] == "Area not found on this work order."


def test_update_line_item_stamps_actor_and_returns_totals(client, work_order_seed, db_session):
    response = client.post(
        f"{BASE}/update-line-item",
        headers=HEADERS,
        json={"work_order_id": 1, "line_item_id": 101, "field": "prepHours", "value": "3.5"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["area_id"] == 10
    assert Decimal(body["line_item"]["prep_hours"]) == Decimal("3.5")
    assert Decimal(body["line_item"]["total_hours"]) == Decimal("9.5")
    assert Decimal(body["totals"]["area_total_hours"]) == Decimal("13.5")
    assert Decimal(body["totals"]["grand_total_hours"]) == Decimal("19.5")

    db_session.expire_all()
    item = db_session.get(WorkOrderLineItem, 101)
    assert item.is_modified is True
    assert item.last_changed_by == "painter@example.com"
    assert db_session.get(WorkOrder, 1).last_changed_by == "painter@example.com"


def test_update_line_item_revalidates_values(client, work_order_seed, db_session):
    cases = [
        ({"field": "working_hours", "value": "30"}, "Hours must be between 0 and 24."),
        ({"field": "coat_count", "value": "101"}, "Coats must be between 0 and 100."),
        ({"field": "unit", "value": "x" * 51}, "Unit cannot exceed 50 characters."),
        ({"field": "item_name", "value": "Doors"}, "Invalid field name."),
    ]
    for fields, message in cases:
        body = client.post(
            f"{BASE}/update-line-item",
            json={"work_order_id": 1, "line_item_id": 101, **fields},
        ).json()
        assert body["success"] is False
        assert body["message"] == message

    db_session.expire_all()
    item = db_session.get(WorkOrderLineItem, 101)
    assert item.working_hours == Decimal("6")
    assert item.coat_count == 2
    assert item.is_modified is False


def test_update_deleted_or_foreign_line_item_is_rejected(client, work_order_seed):
    deleted = client.post(
        f"{BASE}/update-line-item",
        json={"work_order_id": 1, "line_item_id": 202, "field": "unit", "value": "ea"},
    ).json()
    foreign = client.post(
        f"{BASE}/update-line-item",
        json={"work_order_id": 1, "line_item_id": 301, "field": "unit", "value": "ea"},
    ).json()

    assert deleted["success"] is False
    assert deleted["message"] == "Line item has been deleted."
    assert foreign["success"] is False
    assert foreign["message"] == "Line item not found on this work order."


def test_malformed_request_is_422(client, work_order_seed):
    response = client.post(
        f"{BASE}/update-line-item",
        json={"work_order_id": 1, "line_item_id": "abc", "field": "unit"},
    )
    assert response.status_code == 422


def test_delete_line_item_is_idempotent(client, work_order_seed, db_session):
    first = client.post(
        f"{BASE}/delete-line-item",
        headers=HEADERS,
        json={"work_order_id": 1, "line_item_id": 102},
    ).json()
    db_session.expire_all()
    stamped = db_session.get(WorkOrderLineItem, 102).deleted_at

    second = client.post(
        f"{BASE}/delete-line-item",
        json={"work_order_id": 1, "line_item_id": 102},
    ).json()

    assert first["success"] is True
    assert first["area_id"] == 10
    assert Decimal(first["totals"]["area_total_hours"]) == Decimal("8")
    assert second["success"] is True
    db_session.expire_all()
    item = db_session.get(WorkOrderLineItem, 102)
    assert item.is_deleted is True
    assert item.deleted_at == stamped
    assert item.deleted_by == "painter@example.com"


def test_update_area_name(client, work_order_seed, db_session):
    ok = client.post(
        f"{BASE}/update-area-name",
        json={"work_order_id": 1, "area_id": 10, "custom_area_name": "  Family Room  "},
    ).json()
    blank = client.post(
        f"{BASE}/update-area-name",
        json={"work_order_id": 1, "area_id": 10, "custom_area_name": "   "},
    ).json()
    too_long = client.post(
        f"{BASE}/update-area-name",
        json={"work_order_id": 1, "area_id": 10, "custom_area_name": "x" * 201},
    ).json()

    assert ok["success"] is True
    assert blank["message"] == "Area name cannot be empty."
    assert too_long["message"] == "Area name cannot exceed 200 characters."
    db_session.expire_all()
    area = db_session.get(WorkOrderArea, 10)
    assert area.custom_area_name == "Family Room"
    assert area.last_changed_by == "System"


def test_reorder_areas(client, work_order_seed, db_session):
    ok = client.post(f"{BASE}/reorder-areas", json={"work_order_id": 1, "area_ids": [20, 10]})
    partial = client.post(f"{BASE}/reorder-areas", json={"work_order_id": 1, "area_ids": [10]})
    foreign = client.post(
        f"{BASE}/reorder-areas", json={"work_order_id": 1, "area_ids": [20, 10, 30]}
    )

    assert ok.json()["success"] is True
    assert partial.json()["success"] is False
    assert foreign.json()["success"] is False
    db_session.expire_all()
    assert db_session.get(WorkOrderArea, 20).sort_order == 1
    assert db_session.get(WorkOrderArea, 10).sort_order == 2


def test_reorder_line_items_covers_active_items_only(client, work_order_seed, db_session):
    with_deleted = client.post(
        f"{BASE}/reorder-line-items",
        json={"work_order_id": 1, "area_id": 20, "line_item_ids": [202, 201]},
    ).json()
    swapped = client.post(
        f"{BASE}/reorder-line-items",
        json={"work_order_id": 1, "area_id": 10, "line_item_ids": [102, 101]},
    ).json()

    assert with_deleted["success"] is False
    assert swapped["success"] is True
    db_session.expire_all()
    assert db_session.get(WorkOrderLineItem, 102).sort_order == 1
    assert db_session.get(WorkOrderLineItem, 101).sort_order == 2


def test_save_all_applies_snapshot(client, work_order_seed, db_session):
    body = client.post(f"{BASE}/save-changes", headers=HEADERS, json=_save_payload()).json()

    assert body["success"] is True
    # 201 gains half an hour of prep, 102 is deleted; 202 stays deleted.
    assert Decimal(body["totals"]["grand_prep_hours"]) == Decimal("4")
    assert Decimal(body["totals"]["grand_total_hours"]) == Decimal("14.5")

    db_session.expire_all()
    kitchen = db_session.get(WorkOrderArea, 20)
    assert kitchen.sort_order == 1
    assert kitchen.custom_area_name == "Galley Kitchen"
    cabinets = db_session.get(WorkOrderLineItem, 201)
    assert cabinets.coat_count == 3
    assert cabinets.is_modified is True
    assert db_session.get(WorkOrderLineItem, 202).is_deleted is True
    ceiling = db_session.get(WorkOrderLineItem, 102)
    assert ceiling.is_deleted is True
    assert ceiling.deleted_by == "painter@example.com"


def test_save_all_rejects_duplicate_ranks_without_partial_writes(
    client, work_order_seed, db_session
):
    payload = _save_payload()
    payload["areas"][1]["sort_order"] = 1

    body = client.post(f"{BASE}/save-changes", json=payload).json()

    assert body["success"] is False
    assert body["message"] == "Duplicate area sort order."
    db_session.expire_all()
    assert db_session.get(WorkOrderArea, 20).sort_order == 2
    assert db_session.get(WorkOrderLineItem, 201).coat_count == 2


def test_save_all_rejects_out_of_range_values(client, work_order_seed):
    payload = _save_payload()
    payload["areas"][0]["line_items"][0]["working_hours"] = "24.5"

    body = client.post(f"{BASE}/save-changes", json=payload).json()

    assert body["success"] is False
    assert body["message"] == "Hours must be between 0 and 24."


def test_save_all_rejects_items_from_other_areas(client, work_order_seed):
    payload = _save_payload()
    payload["areas"][0]["line_items"][0]["line_item_id"] = 301

    body = client.post(f"{BASE}/save-changes", json=payload).json()

    assert body["success"] is False
    assert body["message"] == "Line item 301 is not part of area 20."
