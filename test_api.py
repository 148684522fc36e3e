from decimal import Decimal

from app.core.config import settings
from conftest import ACCOUNTING_ID, EMPLOYEE_ID, MANAGER_ID, auth_headers

API = settings.API_V1_STR
EMPLOYEE = auth_headers(EMPLOYEE_ID)
MANAGER = auth_headers(MANAGER_ID, role="manager")
ACCOUNTING = auth_headers(ACCOUNTING_ID, role="accounting_manager")


def create_open_report(client):
    response = client.post(f"{API}/reports/", headers=EMPLOYEE, json={
        "trip_destination": "Rome",
        "trip_purpose": "Sales visit",
        "trip_start_date": "2026-04-10",
        "trip_end_date": "2026-04-12",
    })
    assert response.status_code == 201
    report_id = response.json()["id"]
    assert response.json()["status"] == "draft"

    response = client.post(f"{API}/reports/{report_id}/open", headers=EMPLOYEE)
    assert response.json()["status"] == "open"

    for day, category, amount, currency in (
        ("2026-04-10", "flights", "250", "EUR"),
        ("2026-04-11", "accommodation", "180", "EUR"),
        ("2026-04-11", "food", "95", "ILS"),
    ):
        response = client.post(f"{API}/reports/{report_id}/expenses", headers=EMPLOYEE, json={
            "expense_date": day,
            "category": category,
            "description": category,
            "amount": amount,
            "currency": currency,
        })
        assert response.status_code == 201
    return report_id


def submit(client, report_id):
    response = client.post(f"{API}/reports/{report_id}/submit", headers=EMPLOYEE, json={"manager_id": MANAGER_ID})
    assert response.status_code == 200
    return response.json()


def manager_token(client, report_id):
    """Token from the approval link in the manager's notification."""
    notifications = client.get(f"{API}/notifications/", headers=MANAGER).json()
    link = next(
        n["action_url"] for n in notifications
        if n["kind"] == "submitted" and n["entity_id"] == report_id
    )
    return link.rsplit("/", 1)[-1]


def test_requires_valid_token(client):
    response = client.get(f"{API}/reports/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_report_lifecycle_approve_all(client):
    report_id = create_open_report(client)
    body = submit(client, report_id)
    assert body["status"] == "pending_approval"
    assert Decimal(body["total_amount"]) == Decimal("1772.00")
    assert "approval_token" not in body
    token = manager_token(client, report_id)

    pending = client.get(f"{API}/reports/pending", headers=MANAGER).json()
    assert [r["id"] for r in pending] == [report_id]

    decisions = [
        {"expense_id": line["id"], "status": "approved"}
        for line in body["expenses"]
    ]
    response = client.post(f"{API}/reports/{report_id}/review", headers=MANAGER, json={
        "token": token, "decisions": decisions,
    })
    assert response.status_code == 200
    assert response.json()["status"] == "closed"

    again = client.post(f"{API}/reports/{report_id}/review", headers=MANAGER, json={
        "token": token, "decisions": decisions,
    })
    assert again.status_code == 409
    assert again.json()["code"] == "already_acted"

    history = client.get(f"{API}/reports/{report_id}/history", headers=EMPLOYEE).json()
    assert history[-1]["action"] == "approved"


def test_reject_without_comment_is_422(client):
    report_id = create_open_report(client)
    lines = submit(client, report_id)["expenses"]
    decisions = [{"expense_id": lines[0]["id"], "status": "rejected"}] + [
        {"expense_id": line["id"], "status": "approved"} for line in lines[1:]
    ]
    response = client.post(f"{API}/reports/{report_id}/review", headers=MANAGER, json={
        "token": manager_token(client, report_id), "decisions": decisions,
    })
    assert response.status_code == 422
    assert response.json()["code"] == "missing_justification"

    report = client.get(f"{API}/reports/{report_id}", headers=EMPLOYEE).json()
    assert report["status"] == "pending_approval"
    assert {line["approval_status"] for line in report["expenses"]} == {"pending"}


def test_token_decision_reject(client):
    report_id = create_open_report(client)
    submit(client, report_id)
    response = client.post(
        f"{API}/reports/approve-by-token/{manager_token(client, report_id)}", headers=MANAGER,
        json={"action": "reject", "rejection_reason": "missing receipt"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "open"
    assert response.json()["rejection_reason"] == "missing receipt"

    notifications = client.get(f"{API}/notifications/", headers=EMPLOYEE).json()
    assert [n["kind"] for n in notifications] == ["rejected"]


def test_submit_twice_is_400(client):
    report_id = create_open_report(client)
    submit(client, report_id)
    response = client.post(f"{API}/reports/{report_id}/submit", headers=EMPLOYEE, json={"manager_id": MANAGER_ID})
    assert response.status_code == 400
    assert response.json()["code"] == "already_pending"


def test_employee_cannot_name_themselves_as_manager(client):
    report_id = create_open_report(client)
    response = client.post(f"{API}/reports/{report_id}/submit", headers=EMPLOYEE, json={"manager_id": EMPLOYEE_ID})
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_state"

    report = client.get(f"{API}/reports/{report_id}", headers=EMPLOYEE).json()
    assert report["status"] == "open"
    assert client.get(f"{API}/notifications/", headers=EMPLOYEE).json() == []


def test_submitting_employee_never_sees_the_approval_link(client):
    report_id = create_open_report(client)
    body = submit(client, report_id)
    assert "approval_link" not in body
    assert client.get(f"{API}/notifications/", headers=EMPLOYEE).json() == []

    token = manager_token(client, report_id)
    response = client.post(f"{API}/reports/approve-by-token/{token}", headers=EMPLOYEE, json={"action": "approve"})
    assert response.status_code == 403
    assert client.get(f"{API}/reports/{report_id}", headers=EMPLOYEE).json()["status"] == "pending_approval"


def test_other_users_cannot_read_report(client):
    report_id = create_open_report(client)
    response = client.get(f"{API}/reports/{report_id}", headers=auth_headers(99))
    assert response.status_code == 403
    assert client.get(f"{API}/reports/{report_id}", headers=ACCOUNTING).status_code == 200
    assert client.get(f"{API}/reports/424242", headers=EMPLOYEE).status_code == 404


def test_unknown_currency_is_422(client):
    report_id = create_open_report(client)
    response = client.post(f"{API}/reports/{report_id}/expenses", headers=EMPLOYEE, json={
        "expense_date": "2026-04-11", "category": "food", "amount": "10", "currency": "XXX",
    })
    assert response.status_code == 422
    assert response.json()["code"] == "rate_unavailable"


def test_category_correction_requires_accounting(client):
    report_id = create_open_report(client)
    report = client.get(f"{API}/reports/{report_id}", headers=EMPLOYEE).json()
    expense_id = report["expenses"][2]["id"]

    response = client.patch(f"{API}/reports/expenses/{expense_id}/category", headers=EMPLOYEE,
                            json={"category": "miscellaneous"})
    assert response.status_code == 403

    response = client.patch(f"{API}/reports/expenses/{expense_id}/category", headers=ACCOUNTING,
                            json={"category": "miscellaneous"})
    assert response.status_code == 200
    assert response.json()["category"] == "miscellaneous"


def test_duplicates_and_budget_endpoints(client):
    report_id = create_open_report(client)
    client.post(f"{API}/reports/{report_id}/expenses", headers=EMPLOYEE, json={
        "expense_date": "2026-04-11", "category": "food", "description": "Food", "amount": "95", "currency": "ILS",
    })
    groups = client.get(f"{API}/reports/{report_id}/duplicates", headers=EMPLOYEE).json()
    assert len(groups) == 1
    assert "same date, amount, currency" in groups[0]["reason"]

    assert client.get(f"{API}/reports/{report_id}/budget", headers=EMPLOYEE).json() is None

    travel = client.post(f"{API}/travel-requests/", headers=EMPLOYEE, json={
        "destination": "Rome", "start_date": "2026-04-10", "end_date": "2026-04-12", "estimated_total": "2000",
    }).json()
    client.post(f"{API}/travel-requests/{travel['id']}/submit", headers=EMPLOYEE, json={"steps": []})
    response = client.put(f"{API}/travel-requests/{travel['id']}/approved-budget", headers=ACCOUNTING, json={
        "approval_number": "TA-2026-0007",
        "expense_report_id": report_id,
        "approved_budget": {
            "flights": "1000", "accommodation_total": "600", "meals_total": "200",
            "transport": "100", "total": "2000",
        },
    })
    assert response.status_code == 200

    budget = client.get(f"{API}/reports/{report_id}/budget", headers=EMPLOYEE).json()
    assert budget["approval_number"] == "TA-2026-0007"
    flights = budget["lines"][0]
    assert flights["category"] == "flights"
    assert flights["percentage_used"] == 97.5
    assert flights["band"] == "on budget"
    assert budget["missing_keys"] == []


def test_travel_request_chain_over_http(client):
    travel = client.post(f"{API}/travel-requests/", headers=EMPLOYEE, json={
        "destination": "Lisbon", "start_date": "2026-07-01", "end_date": "2026-07-03", "estimated_total": "3000",
    })
    assert travel.status_code == 201
    request_id = travel.json()["id"]

    response = client.post(f"{API}/travel-requests/{request_id}/submit", headers=EMPLOYEE, json={"steps": [
        {"approver_rule": "direct_manager", "approver_user_id": MANAGER_ID},
        {"approver_rule": "accounting_manager", "approver_user_id": ACCOUNTING_ID,
         "skip_if_amount_under": "5000"},
    ]})
    assert response.status_code == 200
    assert response.json()["status"] == "pending_approval"

    steps = client.get(f"{API}/travel-requests/{request_id}/approvals", headers=EMPLOYEE).json()
    assert [s["status"] for s in steps] == ["pending", "pending"]

    response = client.post(f"{API}/travel-requests/{request_id}/approvals/{steps[1]['id']}/approve",
                           headers=ACCOUNTING, json={})
    assert response.status_code == 400

    response = client.post(f"{API}/travel-requests/{request_id}/approvals/{steps[0]['id']}/reject",
                           headers=MANAGER, json={})
    assert response.status_code == 422

    response = client.post(f"{API}/travel-requests/{request_id}/approvals/{steps[0]['id']}/approve",
                           headers=MANAGER, json={"comment": "ok"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "approved"
    assert [s["status"] for s in body["approval_steps"]] == ["approved", "skipped"]

    response = client.post(f"{API}/travel-requests/{request_id}/approvals/{steps[0]['id']}/approve",
                           headers=MANAGER, json={})
    assert response.status_code == 409
    assert response.json()["code"] == "already_acted"


def test_approval_chain_visible_only_to_involved_users(client):
    request_id = client.post(f"{API}/travel-requests/", headers=EMPLOYEE, json={
        "destination": "Vienna", "start_date": "2026-08-01", "end_date": "2026-08-03", "estimated_total": "900",
    }).json()["id"]
    client.post(f"{API}/travel-requests/{request_id}/submit", headers=EMPLOYEE, json={"steps": [
        {"approver_rule": "direct_manager", "approver_user_id": MANAGER_ID},
    ]})
    url = f"{API}/travel-requests/{request_id}/approvals"

    assert client.get(url, headers=auth_headers(999)).status_code == 403
    assert client.get(url, headers=auth_headers(999, role="manager")).status_code == 403
    assert client.get(url, headers=EMPLOYEE).status_code == 200
    assert client.get(url, headers=MANAGER).status_code == 200
    assert client.get(url, headers=ACCOUNTING).status_code == 200
    assert client.get(f"{API}/travel-requests/424242/approvals", headers=EMPLOYEE).status_code == 404


def test_travel_request_cancel_and_delete(client):
    request_id = client.post(f"{API}/travel-requests/", headers=EMPLOYEE, json={
        "destination": "Oslo", "start_date": "2026-09-01", "end_date": "2026-09-02",
    }).json()["id"]

    response = client.post(f"{API}/travel-requests/{request_id}/cancel", headers=EMPLOYEE)
    assert response.json()["status"] == "cancelled"

    assert client.delete(f"{API}/travel-requests/{request_id}", headers=MANAGER).status_code == 403
    assert client.delete(f"{API}/travel-requests/{request_id}", headers=EMPLOYEE).status_code == 204
    assert client.get(f"{API}/travel-requests/{request_id}", headers=EMPLOYEE).status_code == 404


def test_travel_request_dates_validated(client):
    response = client.post(f"{API}/travel-requests/", headers=EMPLOYEE, json={
        "destination": "Oslo", "start_date": "2026-09-05", "end_date": "2026-09-02",
    })
    assert response.status_code == 422
