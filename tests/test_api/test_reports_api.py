"""
API tests through an in-process ASGI client.
The SQL store is swapped for the in-memory one via dependency overrides.
"""

import httpx
import pytest

from expense_reports.dependencies import get_notifier, get_receipt_store, get_store
from expense_reports.main import app
from expense_reports.storage.receipts import ReceiptStore
from tests.factories import ADMIN_ID, OWNER_ID, STRANGER_ID

OWNER = {"X-User-Id": OWNER_ID}
ADMIN = {"X-User-Id": ADMIN_ID}
STRANGER = {"X-User-Id": STRANGER_ID}

ITEMS = [
    {"date": "2024-03-01", "amount_input": "$12.34", "category": "Meals - Lunch"},
    {"date": "2024-03-02", "amount_cents": 500, "category": "Other", "description": " tip "},
]


@pytest.fixture
async def client(store, notifier, tmp_path):
    receipts = ReceiptStore(root=str(tmp_path))
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_receipt_store] = lambda: receipts
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def _submit(client, items=ITEMS):
    response = await client.post("/api/v1/reports", json={"items": items}, headers=OWNER)
    assert response.status_code == 201, response.text
    return response.json()["report"]


class TestSubmitAndRead:

    async def test_submit(self, client, notifier):
        response = await client.post("/api/v1/reports", json={"items": ITEMS}, headers=OWNER)

        assert response.status_code == 201
        body = response.json()
        report = body["report"]
        assert report["status"] == "submitted"
        assert report["total_amount_cents"] == 1734
        assert report["total_display"] == "$17.34"
        assert sorted(report["allowed_actions"]) == ["delete", "edit", "view"]
        assert [i["description"] for i in report["items"]] == [None, "tip"]
        assert body["warnings"] == []
        assert notifier.notified == [report["id"]]

    async def test_missing_principal(self, client):
        response = await client.post("/api/v1/reports", json={"items": ITEMS})
        assert response.status_code == 401

    async def test_empty_submission(self, client):
        response = await client.post("/api/v1/reports", json={"items": []}, headers=OWNER)
        assert response.status_code == 422

    async def test_unknown_category(self, client):
        items = [{"date": "2024-03-01", "amount_cents": 1, "category": "Yachts"}]
        response = await client.post("/api/v1/reports", json={"items": items}, headers=OWNER)
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "ERR_VALIDATION"

    async def test_detail_and_permissions(self, client):
        report = await _submit(client)

        mine = await client.get(f"/api/v1/reports/{report['id']}", headers=OWNER)
        theirs = await client.get(f"/api/v1/reports/{report['id']}", headers=STRANGER)
        reviewer = await client.get(f"/api/v1/reports/{report['id']}", headers=ADMIN)

        assert mine.status_code == 200
        assert theirs.status_code == 403
        assert theirs.json()["detail"]["code"] == "ERR_PERMISSION"
        assert sorted(reviewer.json()["allowed_actions"]) == ["approve", "edit", "reject", "view"]

    async def test_not_found(self, client):
        response = await client.get("/api/v1/reports/nope", headers=OWNER)
        assert response.status_code == 404

    async def test_list_and_summary(self, client):
        report = await _submit(client)

        own = await client.get("/api/v1/reports", headers=OWNER)
        admin_view = await client.get("/api/v1/reports", headers=ADMIN)
        summary = await client.get("/api/v1/reports/summary", headers=OWNER)

        assert own.json()["total"] == 1
        entry = admin_view.json()["reports"][0]
        assert entry["id"] == report["id"]
        assert entry["owner_email"] == "owner@example.com"
        assert entry["min_date"] == "2024-03-01"
        assert entry["max_date"] == "2024-03-02"
        assert summary.json() == {"submitted": 1, "approved": 0, "rejected": 0}


class TestEditAndReview:

    async def test_owner_edit_after_rejection(self, client, notifier):
        report = await _submit(client)
        await client.post(f"/api/v1/reports/{report['id']}/reject", headers=ADMIN)
        notifier.notified.clear()

        first, second = report["items"]
        edit = {"items": [
            {**first, "amount_cents": 2000, "amount_display": None},
            {**second, "is_deleted": True},
            {"date": "2024-03-05", "amount_input": "3.00", "category": "Parking", "is_new": True},
            {"date": "2024-03-06", "amount_cents": 1, "category": "Parking", "is_new": True, "is_deleted": True},
        ]}
        response = await client.put(f"/api/v1/reports/{report['id']}/items", json=edit, headers=OWNER)

        assert response.status_code == 200, response.text
        saved = response.json()["report"]
        assert saved["status"] == "submitted"
        assert saved["total_amount_cents"] == 2300
        assert [i["id"] for i in saved["items"]][0] == first["id"]
        assert len(saved["items"]) == 2
        assert notifier.notified == [report["id"]]

    async def test_deleting_every_item_rejected(self, client):
        report = await _submit(client)
        edit = {"items": [{**i, "is_deleted": True} for i in report["items"]]}
        response = await client.put(f"/api/v1/reports/{report['id']}/items", json=edit, headers=OWNER)
        assert response.status_code == 422
        assert response.json()["detail"]["stage"] == "VALIDATING"

    async def test_approve_then_owner_locked_out(self, client):
        report = await _submit(client)

        approved = await client.post(f"/api/v1/reports/{report['id']}/approve", headers=ADMIN)
        again = await client.post(f"/api/v1/reports/{report['id']}/approve", headers=ADMIN)
        edit = await client.put(
            f"/api/v1/reports/{report['id']}/items",
            json={"items": report["items"]},
            headers=OWNER,
        )
        delete = await client.delete(f"/api/v1/reports/{report['id']}", headers=OWNER)

        assert approved.json()["status"] == "approved"
        assert again.status_code == 403
        assert edit.status_code == 403
        assert delete.status_code == 403

    async def test_owner_cannot_approve(self, client):
        report = await _submit(client)
        response = await client.post(f"/api/v1/reports/{report['id']}/approve", headers=OWNER)
        assert response.status_code == 403

    async def test_delete(self, client, store):
        report = await _submit(client)
        response = await client.delete(f"/api/v1/reports/{report['id']}", headers=OWNER)
        assert response.status_code == 204
        assert store.reports == {}


class TestReceipts:

    async def test_upload_and_download(self, client):
        upload = await client.post(
            "/api/v1/receipts",
            params={"item_key": "k1"},
            files={"file": ("taxi.pdf", b"%PDF-1.4", "application/pdf")},
            headers=OWNER,
        )
        assert upload.status_code == 201, upload.text
        body = upload.json()
        assert body["path"] == f"{OWNER_ID}/k1/taxi.pdf"
        assert body["receipt_ref"] == f"/api/v1/receipts/{OWNER_ID}/k1/taxi.pdf"
        assert body["size_bytes"] == 8

        mine = await client.get(body["receipt_ref"], headers=OWNER)
        admin = await client.get(body["receipt_ref"], headers=ADMIN)
        other = await client.get(body["receipt_ref"], headers=STRANGER)

        assert mine.content == b"%PDF-1.4"
        assert admin.status_code == 200
        assert other.status_code == 403

    async def test_dot_segments_cannot_reach_other_owner(self, client):
        upload = await client.post(
            "/api/v1/receipts",
            params={"item_key": "k1"},
            files={"file": ("taxi.pdf", b"%PDF-SECRET", "application/pdf")},
            headers=OWNER,
        )
        assert upload.status_code == 201

        direct = await client.get(f"/api/v1/receipts/{OWNER_ID}/k1/taxi.pdf", headers=STRANGER)
        dotted = await client.get(
            f"/api/v1/receipts/{STRANGER_ID}/%2e%2e/{OWNER_ID}/k1/taxi.pdf", headers=STRANGER
        )

        assert direct.status_code == 403
        assert dotted.status_code == 403
        assert b"SECRET" not in dotted.content

    async def test_dot_segments_resolving_to_own_file(self, client):
        await client.post(
            "/api/v1/receipts",
            params={"item_key": "k1"},
            files={"file": ("taxi.pdf", b"%PDF", "application/pdf")},
            headers=OWNER,
        )
        response = await client.get(
            f"/api/v1/receipts/{STRANGER_ID}/%2e%2e/{OWNER_ID}/k1/taxi.pdf", headers=OWNER
        )
        assert response.status_code == 200
        assert response.content == b"%PDF"

    async def test_path_escaping_root_not_found(self, client):
        response = await client.get(
            f"/api/v1/receipts/{OWNER_ID}/%2e%2e/%2e%2e/etc/passwd", headers=OWNER
        )
        assert response.status_code == 404

    async def test_unsupported_type(self, client):
        response = await client.post(
            "/api/v1/receipts",
            params={"item_key": "k1"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=OWNER,
        )
        assert response.status_code == 415

    async def test_upload_for_report_needs_edit_rights(self, client):
        report = await _submit(client)
        item_id = report["items"][0]["id"]

        mine = await client.post(
            "/api/v1/receipts",
            params={"item_key": item_id, "report_id": report["id"]},
            files={"file": ("a.png", b"\x89PNG", "image/png")},
            headers=OWNER,
        )
        theirs = await client.post(
            "/api/v1/receipts",
            params={"item_key": item_id, "report_id": report["id"]},
            files={"file": ("a.png", b"\x89PNG", "image/png")},
            headers=STRANGER,
        )

        assert mine.status_code == 201
        assert mine.json()["path"] == f"{OWNER_ID}/{report['id']}/{item_id}/a.png"
        assert theirs.status_code == 403
