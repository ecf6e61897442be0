from __future__ import annotations

from fastapi.testclient import TestClient

from workledger.documents import apply_filters, effective_sort_field, paginate, sort_items
from workledger.main import app


def seed_repairs(client: TestClient) -> list[dict]:
    records = [
        {"ID": 3, "DateTime": "2024-03-02T10:00:00", "Cliente": "Metalurgica Sul", "Equipamento": "Torno CNC"},
        {"ID": 1, "DateTime": "2024-01-15T09:30:00", "Cliente": "Oficina Norte", "Equipamento": "Fresadora"},
        {"ID": 2, "DateTime": "2024-02-20T14:45:00", "Cliente": "metalurgica sul", "Equipamento": "Prensa"},
        {"ID": 4, "DateTime": "2024-04-01T08:00:00", "Cliente": "Oficina Norte", "Equipamento": "Torno manual"},
    ]
    for record in records:
        response = client.post("/api/repairs/equipment", json=record)
        assert response.status_code == 201
        assert response.json()["success"] is True
    return records


def test_new_repair_is_stored_with_an_id():
    client = TestClient(app)
    response = client.post("/api/repairs/circuits", json={"Circuito": "C-12", "DateTime": "2024-01-01T00:00:00", "_id": "forged"})
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["Circuito"] == "C-12"
    assert data["_id"] != "forged"

    fetched = client.get("/api/getdata", params={"dataType": "tblCircuitoList"}).json()["data"]
    assert fetched == [data]


def test_paginated_search_defaults_to_newest_first():
    client = TestClient(app)
    seed_repairs(client)

    response = client.get("/api/getpagdata", params={"dataType": "tblRepairList", "pageSize": 3})
    assert response.status_code == 200
    body = response.json()
    assert [item["ID"] for item in body["data"]] == [4, 3, 2]
    assert body["totalItems"] == 4
    assert body["totalPages"] == 2
    assert body["currentPage"] == 1

    second = client.get("/api/getpagdata", params={"dataType": "tblRepairList", "pageSize": 3, "page": 2}).json()
    assert [item["ID"] for item in second["data"]] == [1]


def test_paginated_search_filters_by_case_insensitive_substring():
    client = TestClient(app)
    seed_repairs(client)

    response = client.get(
        "/api/getpagdata",
        params={"dataType": "tblRepairList", "Cliente": "METALURGICA", "sortField": "ID", "sortOrder": "asc"},
    )
    body = response.json()
    assert [item["ID"] for item in body["data"]] == [2, 3]
    assert body["totalItems"] == 2

    torno = client.get("/api/getpagdata", params={"dataType": "tblRepairList", "Equipamento": "torno", "Cliente": ""})
    assert {item["ID"] for item in torno.json()["data"]} == {3, 4}


def test_full_fetch_sorts_ascending_and_falls_back_to_id():
    client = TestClient(app)
    seed_repairs(client)

    by_date = client.get("/api/getdata", params={"dataType": "tblRepairList"}).json()["data"]
    assert [item["ID"] for item in by_date] == [1, 2, 3, 4]

    fallback = client.get("/api/getdata", params={"dataType": "tblRepairList", "sortField": "Unknown", "sortOrder": "desc"})
    assert [item["ID"] for item in fallback.json()["data"]] == [4, 3, 2, 1]


def test_unknown_collection_is_empty():
    client = TestClient(app)
    body = client.get("/api/getpagdata", params={"dataType": "nothing"}).json()
    assert body == {"data": [], "totalItems": 0, "totalPages": 0, "currentPage": 1}


def test_search_rejects_bad_paging_and_order():
    client = TestClient(app)
    assert client.get("/api/getpagdata", params={"dataType": "tblRepairList", "page": 0}).status_code == 400
    assert client.get("/api/getpagdata", params={"dataType": "tblRepairList", "pageSize": 0}).status_code == 400
    assert client.get("/api/getdata", params={"dataType": "tblRepairList", "sortOrder": "up"}).status_code == 400
    missing = client.get("/api/getdata")
    assert missing.status_code == 400
    assert "message" in missing.json()


def test_sort_items_puts_missing_values_last_in_both_orders():
    items = [{"_id": "1", "n": 2}, {"_id": "2"}, {"_id": "3", "n": 10}, {"_id": "4", "n": None}]
    assert [i["_id"] for i in sort_items(items, "n", "asc")] == ["1", "3", "2", "4"]
    assert [i["_id"] for i in sort_items(items, "n", "desc")] == ["3", "1", "2", "4"]


def test_sort_items_handles_mixed_types_and_lists():
    items = [{"v": "b"}, {"v": 5}, {"v": ["a", "z"]}, {"v": 1.5}]
    assert [i["v"] for i in sort_items(items, "v")] == [1.5, 5, ["a", "z"], "b"]


def test_apply_filters_skips_blank_needles_and_excludes_blank_fields():
    items = [{"a": "Alpha"}, {"a": ""}, {"b": "x"}]
    assert apply_filters(items, {"a": ""}) == items
    assert apply_filters(items, {"a": "LPH"}) == [{"a": "Alpha"}]


def test_effective_sort_field_and_paginate():
    assert effective_sort_field([], "DateTime") == "_id"
    assert effective_sort_field([{"ID": 1}], "DateTime") == "ID"
    assert effective_sort_field([{"DateTime": "x", "ID": 1}], "DateTime") == "DateTime"
    page = paginate(list(range(7)), 3, 3)
    assert page == {"data": [6], "totalItems": 7, "totalPages": 3, "currentPage": 3}
