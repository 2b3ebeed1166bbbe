"""
Tests for the HTTP service.

Tests cover:
- Workspace, participant, category and expense creation
- Validation and read-only errors
- Settlement, analytics, leaderboard and cost views
- Text and CSV exports
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def workspace_id(client):
    response = client.post("/workspace/create", data={"workspace_name": "Flat 4"},
                           follow_redirects=False)
    assert response.status_code == 303
    return response.headers["location"].rsplit("/", 1)[-1]


def add_participant(client, workspace_id, name, email=None):
    data = {"participant_name": name}
    if email:
        data["email"] = email
    response = client.post(f"/workspace/{workspace_id}/participant/add", data=data)
    assert response.status_code == 200
    return response.json()["id"]


def add_expense(client, workspace_id, amount, payer, beneficiaries,
                expense_date="2025-03-01", category_id=None, title="Dinner"):
    data = {
        "title": title,
        "amount": amount,
        "expense_date": expense_date,
        "payer_id": payer,
        "beneficiary_ids": beneficiaries,
    }
    if category_id:
        data["category_id"] = category_id
    return client.post(f"/workspace/{workspace_id}/expense/add", data=data)


@pytest.fixture
def household(client, workspace_id):
    ids = {
        "alice": add_participant(client, workspace_id, "Alice", "alice@example.com"),
        "bob": add_participant(client, workspace_id, "Bob"),
        "carol": add_participant(client, workspace_id, "Carol"),
    }
    response = client.post(f"/workspace/{workspace_id}/category/add",
                           data={"category_name": "Groceries"})
    assert response.status_code == 200
    ids["groceries"] = response.json()["id"]
    return ids


class TestWorkspace:
    """Test suite for workspace management."""

    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_create_and_view(self, client, workspace_id):
        response = client.get(f"/workspace/{workspace_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["workspace"]["name"] == "Flat 4"
        assert body["settlement"]["balances"] == []
        assert body["settlement"]["transfers"] == []

    def test_blank_name_rejected(self, client):
        response = client.post("/workspace/create", data={"workspace_name": "  "})

        assert response.status_code == 400

    def test_unknown_workspace(self, client):
        assert client.get("/workspace/missing").status_code == 404
        assert client.get("/workspace/missing/analytics").status_code == 404

    def test_read_only_blocks_changes(self, client, workspace_id):
        response = client.post(f"/workspace/{workspace_id}/toggle-readonly")
        assert response.json() == {"read_only": True}

        response = client.post(f"/workspace/{workspace_id}/participant/add",
                               data={"participant_name": "Eve"})
        assert response.status_code == 403

        client.post(f"/workspace/{workspace_id}/toggle-readonly")
        response = client.post(f"/workspace/{workspace_id}/participant/add",
                               data={"participant_name": "Eve"})
        assert response.status_code == 200

    def test_invalid_email(self, client, workspace_id):
        response = client.post(f"/workspace/{workspace_id}/participant/add",
                               data={"participant_name": "Eve", "email": "nope"})

        assert response.status_code == 400


class TestExpenses:
    """Test suite for recording expenses."""

    def test_add_expense_returns_settlement(self, client, workspace_id, household):
        response = add_expense(client, workspace_id, "300", household["alice"],
                               [household["alice"], household["bob"], household["carol"]])

        assert response.status_code == 200
        body = response.json()
        assert body["expense"]["amount"] == 300.0
        transfers = body["settlement"]["transfers"]
        assert [(t["from_participant_name"], t["to_participant_name"], t["amount"])
                for t in transfers] == [("Carol", "Alice", 100.0), ("Bob", "Alice", 100.0)]

    @pytest.mark.parametrize("amount", ["abc", "0", "-5"])
    def test_bad_amount(self, client, workspace_id, household, amount):
        response = add_expense(client, workspace_id, amount, household["alice"],
                               [household["bob"]])

        assert response.status_code == 400

    def test_unknown_payer(self, client, workspace_id, household):
        response = add_expense(client, workspace_id, "10", "stranger", [household["bob"]])

        assert response.status_code == 400

    def test_unknown_beneficiary(self, client, workspace_id, household):
        response = add_expense(client, workspace_id, "10", household["bob"], ["stranger"])

        assert response.status_code == 400

    def test_unknown_category(self, client, workspace_id, household):
        response = add_expense(client, workspace_id, "10", household["bob"],
                               [household["bob"]], category_id="nope")

        assert response.status_code == 400

    def test_duplicate_beneficiary(self, client, workspace_id, household):
        response = add_expense(client, workspace_id, "10", household["bob"],
                               [household["bob"], household["bob"]])

        assert response.status_code == 400

    def test_bad_date(self, client, workspace_id, household):
        response = add_expense(client, workspace_id, "10", household["bob"],
                               [household["bob"]], expense_date="yesterday")

        assert response.status_code == 400


class TestReports:
    """Test suite for the report views."""

    @pytest.fixture(autouse=True)
    def ledger(self, client, workspace_id, household):
        everyone = [household["alice"], household["bob"], household["carol"]]
        add_expense(client, workspace_id, "300", household["alice"], everyone,
                    expense_date="2025-03-01", category_id=household["groceries"])
        add_expense(client, workspace_id, "100", household["bob"],
                    [household["alice"], household["bob"]], expense_date="2025-03-04")

    def test_balances(self, client, workspace_id):
        body = client.get(f"/workspace/{workspace_id}").json()

        balances = {b["participant_name"]: b for b in body["settlement"]["balances"]}
        assert balances["Alice"]["balance"] == 150.0
        assert balances["Bob"]["balance"] == -50.0
        assert balances["Carol"]["balance"] == -100.0
        assert body["settlement"]["residual"] == 0.0

    def test_filtered_settlement(self, client, workspace_id, household):
        body = client.get(f"/workspace/{workspace_id}",
                          params={"paid_by": household["bob"]}).json()

        transfers = body["settlement"]["transfers"]
        assert len(transfers) == 1
        assert transfers[0]["from_participant_name"] == "Alice"
        assert transfers[0]["amount"] == 50.0

    def test_date_filter(self, client, workspace_id):
        body = client.get(f"/workspace/{workspace_id}",
                          params={"date_from": "2025-03-02"}).json()

        balances = {b["participant_name"]: b for b in body["settlement"]["balances"]}
        assert balances["Carol"]["balance"] == 0.0

    def test_analytics(self, client, workspace_id):
        response = client.get(f"/workspace/{workspace_id}/analytics",
                              params={"period": "month"})

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["total"] == 400.0
        assert body["summary"]["most_expensive_category"]["category_name"] == "Groceries"
        assert body["trend"] == [{"bucket_start": "2025-03-01", "label": "Mar 2025",
                                  "amount": 400.0}]

    def test_analytics_rejects_unknown_period(self, client, workspace_id):
        response = client.get(f"/workspace/{workspace_id}/analytics",
                              params={"period": "year"})

        assert response.status_code == 422

    def test_leaderboard(self, client, workspace_id):
        body = client.get(f"/workspace/{workspace_id}/leaderboard").json()

        assert [p["participant_name"] for p in body["rankings"]] == ["Alice", "Bob", "Carol"]
        badges = {b["title"]: b["participant_name"] for b in body["badges"]}
        assert badges["Most Generous"] == "Alice"
        assert badges["Top Groceries Payer"] == "Alice"

    def test_costs(self, client, workspace_id):
        body = client.get(f"/workspace/{workspace_id}/costs").json()

        assert [(c["participant_name"], c["total_cost"]) for c in body] == [
            ("Alice", 150.0), ("Bob", 150.0), ("Carol", 100.0)]

    def test_summary_text(self, client, workspace_id):
        response = client.get(f"/workspace/{workspace_id}/export/summary")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        text = response.text
        assert "SplitSpace: Flat 4" in text
        assert "1. Carol owes Alice: ₹100.00" in text
        assert "2. Bob owes Alice: ₹50.00" in text
        assert "Total Settlements: 2 transactions" in text

    def test_summary_when_settled(self, client, workspace_id, household):
        response = client.get(f"/workspace/{workspace_id}/export/summary",
                              params={"paid_by": household["carol"]})

        assert "All settled! No transfers needed." in response.text

    def test_csv_export(self, client, workspace_id):
        response = client.get(f"/workspace/{workspace_id}/export/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "settlement_Flat_4.csv" in response.headers["content-disposition"]
        text = response.content.decode("utf-8-sig")
        assert "TRANSFERS" in text
        assert "Alice,₹300.00,₹150.00,+₹150.00,Gets back" in text
        assert "Carol,Alice,₹100.00" in text
