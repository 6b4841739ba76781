from datetime import date

from fastapi.testclient import TestClient

from feedesk.main import app
from feedesk.services.guards import action_guard
from feedesk.services.mock_store import get_mock_store, reset_mock_store
from feedesk.services.parent_portal import TOKEN_NOT_FOUND


def test_health_reports_mock_mode() -> None:
    client = TestClient(app)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "mock_data": True}


def test_dashboard_filters_and_echoes_view_state() -> None:
    client = TestClient(app)

    everything = client.get("/invoices").json()
    paid = client.get("/invoices", params={"status": "paid"}).json()
    by_name = client.get("/invoices", params={"search": "AYESHA"}).json()
    nothing = client.get("/invoices", params={"search": "zzz", "status": "draft"}).json()

    assert everything["total"] == 6
    assert everything["state"] == {
        "search_term": "",
        "status_filter": "all",
        "days_ahead": 3,
        "busy": [],
    }
    assert paid["total"] == 2
    assert all(item["status"] == "paid" for item in paid["items"])
    assert by_name["total"] == 2
    assert by_name["items"][0]["student"]["class"] == "7"
    assert nothing["total"] == 0
    assert nothing["empty_message"] == "No invoices found"


def test_dashboard_rejects_unknown_facet() -> None:
    client = TestClient(app)

    response = client.get("/invoices", params={"status": "overdue"})

    assert response.status_code == 422


def test_invoice_crud_routes() -> None:
    client = TestClient(app)
    student_id = get_mock_store().students.rows()[0]["id"]

    created = client.post(
        "/invoices",
        json={"student_id": student_id, "amount": 1200, "due_date": "2024-07-01"},
    )
    assert created.status_code == 201
    invoice_id = created.json()["id"]
    assert created.json()["status"] == "unpaid"

    paid = client.post(f"/invoices/{invoice_id}/mark-paid")
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert paid.json()["payment_date"] == date.today().isoformat()

    backwards = client.patch(f"/invoices/{invoice_id}", json={"status": "unpaid"})
    assert backwards.status_code == 400

    deleted = client.delete(f"/invoices/{invoice_id}")
    assert deleted.status_code == 204
    assert client.get(f"/invoices/{invoice_id}").status_code == 404


def test_patch_with_null_required_field_is_rejected() -> None:
    client = TestClient(app)
    invoice_id = client.get("/invoices", params={"status": "draft"}).json()["items"][0]["id"]

    for body in ({"status": None}, {"due_date": None}):
        response = client.patch(f"/invoices/{invoice_id}", json=body)
        assert response.status_code == 422

    listing = client.get("/invoices")
    assert listing.status_code == 200
    assert listing.json()["total"] == 6
    assert client.get(f"/invoices/{invoice_id}").json()["status"] == "draft"


def test_generate_reminders_route_logs_each_message() -> None:
    client = TestClient(app)

    response = client.post("/invoices/reminders/generate", json={"days_ahead": 3})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 3
    assert {item["parent_name"] for item in payload["items"]} == {
        "Raza Ahmed",
        "Imran Khan",
        "Sana Khan",
    }
    assert "Tariq Siddiqui" not in payload["copy_text"]
    assert len(get_mock_store().sms_logs.rows()) == 3


def test_generate_reminders_validates_horizon() -> None:
    client = TestClient(app)

    assert client.post("/invoices/reminders/generate", json={"days_ahead": 31}).status_code == 422
    assert client.post("/invoices/reminders/generate", json={"days_ahead": 0}).status_code == 422


def test_generate_reminders_rejects_concurrent_run() -> None:
    client = TestClient(app)

    headers = {"X-Session-Id": "office-1"}

    with action_guard.hold("generate-reminders", session="office-1"):
        busy = client.post("/invoices/reminders/generate", json={}, headers=headers)
        state = client.get("/invoices", headers=headers).json()["state"]
        other = client.post(
            "/invoices/reminders/generate", json={}, headers={"X-Session-Id": "office-2"}
        )
        other_state = client.get("/invoices", headers={"X-Session-Id": "office-2"}).json()["state"]

    assert busy.status_code == 409
    assert state["busy"] == ["generate-reminders"]
    assert other.status_code == 200
    assert other_state["busy"] == []
    assert client.post("/invoices/reminders/generate", json={}).status_code == 200


def test_reminders_csv_download() -> None:
    client = TestClient(app)
    batch = client.post("/invoices/reminders/generate", json={"days_ahead": 3}).json()

    response = client.post("/invoices/reminders/csv", json=batch["items"])

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "fee-reminders-" in response.headers["content-disposition"]
    lines = response.text.split("\n")
    assert lines[0] == "phone,message,student,amount,due_date"
    assert len(lines) == 4


def test_send_reminders_route_uses_wire_names() -> None:
    client = TestClient(app)

    response = client.post("/invoices/reminders/send")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["remindersSent"] == 3
    assert payload["totalInvoices"] == 2


def test_export_csv_download() -> None:
    client = TestClient(app)

    response = client.get("/invoices/export/csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert f"paid-invoices-{date.today().isoformat()}.csv" in disposition
    lines = response.text.split("\n")
    assert lines[0].startswith("invoice_id,student_name,class,roll,amount")
    assert len(lines) == 3


def test_export_receipt_download() -> None:
    client = TestClient(app)

    response = client.get("/invoices/export/receipt")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "paid-invoices-receipt-" in response.headers["content-disposition"]
    assert "<td>PKR 5500</td>" in response.text


def test_exports_return_notice_without_paid_invoices() -> None:
    reset_mock_store(seed=False)
    client = TestClient(app)

    csv_response = client.get("/invoices/export/csv")
    receipt_response = client.get("/invoices/export/receipt")

    assert csv_response.status_code == 404
    assert csv_response.json() == {"detail": "No paid invoices found to export."}
    assert receipt_response.status_code == 404
    assert receipt_response.json() == {"detail": "No paid invoices found to generate receipt."}


def test_parent_search_routes() -> None:
    client = TestClient(app)

    missing_criteria = client.post("/parent/search", json={"name": "  "})
    single = client.post("/parent/search", json={"name": "ali"})
    many = client.post("/parent/search", json={"class": "5"})
    none = client.post("/parent/search", json={"roll": "404"})

    assert missing_criteria.status_code == 422
    assert single.json()["selected"]["student"]["name"] == "Ali Raza"
    assert len(many.json()["candidates"]) == 2
    assert none.json()["notice"] == "No student found"


def test_parent_token_lookup_and_student_invoices() -> None:
    client = TestClient(app)
    invoice = get_mock_store().invoices.rows()[0]

    found = client.get("/parent/lookup", params={"token": invoice["pay_link"]})
    missing = client.get("/parent/lookup", params={"token": "nope"})
    listed = client.get(f"/parent/students/{invoice['student_id']}/invoices")
    unknown = client.get("/parent/students/STU-99999/invoices")

    assert found.json()["selected"]["student"]["id"] == invoice["student_id"]
    assert missing.json()["notice"] == TOKEN_NOT_FOUND
    assert listed.status_code == 200
    assert len(listed.json()["invoices"]) == 2
    assert unknown.status_code == 404


def test_parent_payment_submission() -> None:
    client = TestClient(app)

    blank = client.post(
        "/parent/payments", json={"invoice_id": "INV-00001", "reference_number": "  "}
    )
    accepted = client.post(
        "/parent/payments", json={"invoice_id": "INV-00001", "reference_number": "TXN-1"}
    )

    assert blank.status_code == 422
    assert accepted.status_code == 201
    assert accepted.json()["status"] == "pending"
    assert get_mock_store().payments.rows()[0]["reference_number"] == "TXN-1"
