from fastapi import status

from tests.conf_tests import client, clear_storage

TEST_EXPENSE_DATA = {
    "date": "2024-03-05",
    "amount": 45.5,
    "currency": "EUR",
    "category": "supplies",
    "description": "Coffee",
}

TEST_RULE_DATA = {
    "amount": 1500,
    "currency": "EUR",
    "category": "rent",
    "description": "Office rent",
    "day_of_month": 31,
}


def test_create_expense_success():
    response = client.post("/expenses/", json=TEST_EXPENSE_DATA)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["id"].startswith("expense-")
    assert data["is_recurring"] is False


def test_create_expense_negative_amount():
    response = client.post("/expenses/", json={**TEST_EXPENSE_DATA, "amount": -1})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_list_expenses_by_range():
    client.post("/expenses/", json=TEST_EXPENSE_DATA)
    client.post("/expenses/", json={**TEST_EXPENSE_DATA, "date": "2024-04-05"})

    response = client.get("/expenses/", params={"start_date": "2024-03-01", "end_date": "2024-03-31"})
    assert response.status_code == status.HTTP_200_OK
    assert [e["date"] for e in response.json()] == ["2024-03-05"]
    assert len(client.get("/expenses/").json()) == 2


def test_update_and_delete_expense():
    expense_id = client.post("/expenses/", json=TEST_EXPENSE_DATA).json()["id"]
    response = client.put(f"/expenses/{expense_id}", json={**TEST_EXPENSE_DATA, "date": "2024-04-01"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == expense_id

    response = client.get("/expenses/", params={"start_date": "2024-04-01", "end_date": "2024-04-30"})
    assert [e["id"] for e in response.json()] == [expense_id]

    response = client.delete(f"/expenses/{expense_id}")
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/expenses/").json() == []


def test_recurring_expense_generation():
    response = client.post("/recurring-expenses/", json=TEST_RULE_DATA)
    assert response.status_code == status.HTTP_201_CREATED
    rule_id = response.json()["id"]

    response = client.post("/recurring-expenses/generate", json={"year": 2024, "month": 2})
    assert response.status_code == status.HTTP_200_OK
    (expense,) = response.json()
    assert expense["id"] == f"recurring-{rule_id}-2024-02"
    assert expense["date"] == "2024-02-29"
    assert expense["recurring_expense_id"] == rule_id

    response = client.post("/recurring-expenses/generate", json={"year": 2024, "month": 2})
    assert [e["id"] for e in response.json()] == [expense["id"]]
    assert len(client.get("/expenses/").json()) == 1


def test_generate_invalid_month():
    response = client.post("/recurring-expenses/generate", json={"year": 2024, "month": 13})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_update_recurring_expense_keeps_created_at():
    created = client.post("/recurring-expenses/", json=TEST_RULE_DATA).json()
    response = client.put(f"/recurring-expenses/{created['id']}", json={**TEST_RULE_DATA, "is_active": False})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["is_active"] is False
    assert data["created_at"] == created["created_at"]

    response = client.post("/recurring-expenses/generate", json={"year": 2024, "month": 3})
    assert response.json() == []


def test_delete_recurring_expense_keeps_expenses():
    rule_id = client.post("/recurring-expenses/", json=TEST_RULE_DATA).json()["id"]
    client.post("/recurring-expenses/generate", json={"year": 2024, "month": 3})

    response = client.delete(f"/recurring-expenses/{rule_id}")
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/recurring-expenses/").json() == []
    assert len(client.get("/expenses/").json()) == 1
