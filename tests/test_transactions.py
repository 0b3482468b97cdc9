"""
Tests for the transaction endpoints.

These tests verify:
  - Every response uses the {success, message, data, error, statusCode} envelope
  - Create: 201, standalone and recurring, camelCase fields, plaintext amounts
  - Listing by all / year / month
  - Update and delete, single and series-wide (updateAll / deleteAll)
  - Rejected input maps to the right 400 error code
  - Missing records and categories map to 404
"""

import uuid

import pytest


BASE = "/api/transactions"

JAN_15 = "2025-01-15T00:00:00.000Z"
FEB_15 = "2025-02-15T00:00:00.000Z"
MAR_15 = "2025-03-15T00:00:00.000Z"
APR_15 = "2025-04-15T00:00:00.000Z"


def _body(category, **overrides):
    body = {
        "date": JAN_15,
        "description": "Flat rent",
        "amount": -850,
        "categoryId": str(category.id),
    }
    body.update(overrides)
    return body


def _monthly_body(category, **overrides):
    return _body(
        category,
        isRecurrent=True,
        recurrenceType="monthly",
        recurrenceEndDate=APR_15,
        **overrides,
    )


async def _create_series(client, category):
    response = await client.post(f"{BASE}/create", json=_monthly_body(category))
    assert response.status_code == 201, response.text
    return {txn["date"]: txn for txn in response.json()["data"]["transactions"]}


def _assert_error(response, status_code, error_code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["success"] is False
    assert body["error"] == error_code
    assert body["statusCode"] == status_code
    assert body["message"]


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestCreate:
    """Tests for POST /api/transactions/create."""

    async def test_standalone(self, authenticated_client, category, owner_id):
        response = await authenticated_client.post(f"{BASE}/create", json=_body(category))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        assert body["message"] == "Transaction created successfully"
        assert body["data"]["insertedCount"] == 1

        txn = body["data"]["transactions"][0]
        assert txn["amount"] == -850
        assert txn["date"] == JAN_15
        assert txn["ownerId"] == str(owner_id)
        assert txn["categoryId"] == str(category.id)
        assert txn["categoryName"] == "housing"
        assert txn["categoryColor"] == "#ff8800"
        assert txn["isRecurrent"] is False
        assert txn["recurrenceId"] is None
        assert txn["isOriginalRecurrence"] is False

    async def test_recurring(self, authenticated_client, category):
        response = await authenticated_client.post(f"{BASE}/create", json=_monthly_body(category))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Recurrent transactions created successfully"
        assert body["data"]["insertedCount"] == 4

        transactions = body["data"]["transactions"]
        assert [txn["date"] for txn in transactions] == [JAN_15, FEB_15, MAR_15, APR_15]
        assert len({txn["recurrenceId"] for txn in transactions}) == 1
        assert [txn["isOriginalRecurrence"] for txn in transactions] == [True, False, False, False]
        assert all(txn["recurrenceType"] == "monthly" for txn in transactions)
        assert all(txn["amount"] == -850 for txn in transactions)

    async def test_snake_case_body_accepted(self, authenticated_client, category):
        response = await authenticated_client.post(
            f"{BASE}/create",
            json={
                "date": JAN_15,
                "description": "Salary",
                "amount": 2100.75,
                "category_id": str(category.id),
            },
        )
        assert response.status_code == 201
        assert response.json()["data"]["transactions"][0]["amount"] == 2100.75


class TestCreateRejected:
    """Rejected bodies produce a 400 with the matching error code."""

    @pytest.mark.parametrize(
        "overrides,error_code",
        [
            ({"date": "2025-01-15"}, "INVALID_DATE_FORMAT"),
            ({"amount": "12"}, "INVALID_AMOUNT"),
            ({"amount": True}, "INVALID_AMOUNT"),
            ({"amount": 10**400}, "INVALID_AMOUNT"),
            ({"description": "   "}, "INVALID_DESCRIPTION"),
            ({"categoryId": "not-an-id"}, "INVALID_ID_FORMAT"),
        ],
    )
    async def test_bad_field(self, authenticated_client, category, overrides, error_code):
        response = await authenticated_client.post(
            f"{BASE}/create", json=_body(category, **overrides)
        )
        _assert_error(response, 400, error_code)

    async def test_missing_description(self, authenticated_client, category):
        body = _body(category)
        del body["description"]
        response = await authenticated_client.post(f"{BASE}/create", json=body)
        _assert_error(response, 400, "INVALID_DESCRIPTION")

    async def test_recurring_without_end_date(self, authenticated_client, category):
        body = _monthly_body(category)
        del body["recurrenceEndDate"]
        response = await authenticated_client.post(f"{BASE}/create", json=body)
        _assert_error(response, 400, "INVALID_RECURRENCE_DATA")

    async def test_unknown_recurrence_type(self, authenticated_client, category):
        body = _monthly_body(category)
        body["recurrenceType"] = "daily"
        response = await authenticated_client.post(f"{BASE}/create", json=body)
        _assert_error(response, 400, "INVALID_RECURRENCE_DATA")

    async def test_end_before_start(self, authenticated_client, category):
        body = _monthly_body(category)
        body["recurrenceEndDate"] = "2024-12-01T00:00:00.000Z"
        response = await authenticated_client.post(f"{BASE}/create", json=body)
        _assert_error(response, 400, "INVALID_DATE_RANGE")

    async def test_unknown_category(self, authenticated_client, category):
        response = await authenticated_client.post(
            f"{BASE}/create", json=_body(category, categoryId=str(uuid.uuid4()))
        )
        _assert_error(response, 404, "CATEGORY_NOT_FOUND")

    async def test_nothing_written_on_rejection(self, authenticated_client, category):
        body = _monthly_body(category)
        body["recurrenceEndDate"] = JAN_15
        await authenticated_client.post(f"{BASE}/create", json=body)

        listing = await authenticated_client.get(f"{BASE}/all")
        assert listing.json()["data"] == []


class TestList:
    """Tests for the listing endpoints."""

    async def test_all_newest_first(self, authenticated_client, category):
        await _create_series(authenticated_client, category)

        response = await authenticated_client.get(f"{BASE}/all")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["statusCode"] == 200
        assert [txn["date"] for txn in body["data"]] == [APR_15, MAR_15, FEB_15, JAN_15]

    async def test_by_year(self, authenticated_client, category):
        await _create_series(authenticated_client, category)

        assert len((await authenticated_client.get(f"{BASE}/2025")).json()["data"]) == 4
        assert (await authenticated_client.get(f"{BASE}/2024")).json()["data"] == []

    async def test_by_month(self, authenticated_client, category):
        await _create_series(authenticated_client, category)

        response = await authenticated_client.get(f"{BASE}/2025/3")

        assert response.status_code == 200
        assert [txn["date"] for txn in response.json()["data"]] == [MAR_15]

    async def test_invalid_month(self, authenticated_client):
        response = await authenticated_client.get(f"{BASE}/2025/13")
        _assert_error(response, 400, "INVALID_DATE_FORMAT")

    async def test_non_numeric_year(self, authenticated_client):
        response = await authenticated_client.get(f"{BASE}/twenty")
        _assert_error(response, 400, "INVALID_DATA")


class TestUpdate:
    """Tests for PUT /api/transactions/{id}."""

    async def test_single(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.put(
            f"{BASE}/{series[FEB_15]['id']}", json={"description": "Rent", "amount": -900}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Transaction(s) updated successfully"
        assert body["data"]["modifiedCount"] == 1
        txn = body["data"]["transactions"][0]
        assert txn["description"] == "Rent"
        assert txn["amount"] == -900

    async def test_update_all_from_february(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.put(
            f"{BASE}/{series[FEB_15]['id']}",
            params={"updateAll": "true"},
            json={"description": "Rent", "date": "2025-02-20T00:00:00.000Z"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["modifiedCount"] == 3
        assert [txn["date"] for txn in data["transactions"]] == [
            "2025-02-20T00:00:00.000Z", MAR_15, APR_15,
        ]

        listing = (await authenticated_client.get(f"{BASE}/all")).json()["data"]
        descriptions = {txn["date"]: txn["description"] for txn in listing}
        assert descriptions == {
            JAN_15: "Flat rent",
            "2025-02-20T00:00:00.000Z": "Rent",
            MAR_15: "Rent",
            APR_15: "Rent",
        }

    async def test_update_all_in_body_rejected(self, authenticated_client, category):
        """The series flag is a query parameter; the body only takes the four fields."""
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.put(
            f"{BASE}/{series[FEB_15]['id']}",
            json={"description": "Rent", "updateAll": True},
        )
        _assert_error(response, 400, "INVALID_DATA")

    async def test_immutable_field_rejected(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.put(
            f"{BASE}/{series[FEB_15]['id']}",
            json={"recurrenceId": str(uuid.uuid4())},
        )
        _assert_error(response, 400, "INVALID_DATA")

    async def test_bad_date(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.put(
            f"{BASE}/{series[FEB_15]['id']}", json={"date": "15/02/2025"}
        )
        _assert_error(response, 400, "INVALID_DATE_FORMAT")

    async def test_malformed_id(self, authenticated_client):
        response = await authenticated_client.put(f"{BASE}/abc", json={"description": "x"})
        _assert_error(response, 400, "INVALID_ID_FORMAT")

    async def test_missing(self, authenticated_client):
        response = await authenticated_client.put(
            f"{BASE}/{uuid.uuid4()}", json={"description": "x"}
        )
        _assert_error(response, 404, "TRANSACTION_NOT_FOUND")


class TestDelete:
    """Tests for DELETE /api/transactions/{id}."""

    async def test_single(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.delete(f"{BASE}/{series[MAR_15]['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Transaction(s) deleted successfully"
        assert body["data"]["deletedCount"] == 1

    async def test_delete_all_from_march(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)

        response = await authenticated_client.delete(
            f"{BASE}/{series[MAR_15]['id']}", params={"deleteAll": "true"}
        )

        assert response.json()["data"]["deletedCount"] == 2
        listing = (await authenticated_client.get(f"{BASE}/all")).json()["data"]
        assert [txn["date"] for txn in listing] == [FEB_15, JAN_15]

    async def test_deleted_record_is_gone(self, authenticated_client, category):
        series = await _create_series(authenticated_client, category)
        target = series[APR_15]["id"]

        await authenticated_client.delete(f"{BASE}/{target}")
        response = await authenticated_client.delete(f"{BASE}/{target}")

        _assert_error(response, 404, "TRANSACTION_NOT_FOUND")

    async def test_malformed_id(self, authenticated_client):
        response = await authenticated_client.delete(f"{BASE}/507f1f77bcf86cd799439011")
        _assert_error(response, 400, "INVALID_ID_FORMAT")
