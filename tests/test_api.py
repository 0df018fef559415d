import pytest
from httpx import ASGITransport, AsyncClient

from partilio.main import app
from partilio.api.deps import get_current_user
from partilio.core.database import get_async_session


@pytest.fixture
async def client(session_factory, user):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_current_user] = lambda: user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def expense_payload(buyer_id, **kwargs):
    payload = {
        "description": "Internet",
        "total_amount": "120.00",
        "type": "FIXED_RECURRING",
        "start_date": "2025-01-05",
        "number_of_months": 2,
        "buyer_id": str(buyer_id),
    }
    payload.update(kwargs)
    return payload


async def test_expenses_require_onboarding(client):
    response = await client.get("/api/v1/expenses")
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "ONBOARDING_INCOMPLETE"


async def test_onboarding_status_flips_after_first_payer(client):
    before = (await client.get("/api/v1/auth/onboarding-status")).json()
    assert before["is_complete"] is False

    created = await client.post("/api/v1/payers", json={"name": "Ana"})
    assert created.status_code == 201

    after = (await client.get("/api/v1/auth/onboarding-status")).json()
    assert after["is_complete"] is True


async def test_duplicate_payer_name_conflicts(client):
    await client.post("/api/v1/payers", json={"name": "Ana"})
    response = await client.post("/api/v1/payers", json={"name": "ana"})
    assert response.status_code == 409


async def test_invalid_split_returns_400_with_total(client, payer, make_payer):
    bruno = await make_payer("Bruno")
    payload = expense_payload(
        payer.id,
        is_divided=True,
        splits=[
            {"payer_id": str(payer.id), "percentage": "60"},
            {"payer_id": str(bruno.id), "percentage": "30"},
        ],
    )
    response = await client.post("/api/v1/expenses", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["total"] == 90.0
    assert "must sum to 100" in body["detail"]


async def test_create_expense_and_list_payments(client, payer):
    response = await client.post("/api/v1/expenses", json=expense_payload(payer.id))
    assert response.status_code == 201
    expense = response.json()
    assert len(expense["payments"]) == 2

    listed = await client.get("/api/v1/expenses")
    assert listed.json()["pagination"]["total"] == 1

    payments = await client.get("/api/v1/payments", params={"expense_id": expense["id"]})
    assert [p["month"] for p in payments.json()] == [1, 2]


async def test_mark_paid_unknown_period_is_404(client, payer):
    expense = (await client.post("/api/v1/expenses", json=expense_payload(payer.id))).json()
    response = await client.post(
        "/api/v1/payments/mark-paid", json={"expense_id": expense["id"], "month": 9, "year": 2025}
    )
    assert response.status_code == 404


async def test_unknown_expense_is_404(client, payer):
    response = await client.get("/api/v1/expenses/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


async def test_csv_import_reports_row_errors(client, payer):
    content = (
        "descricao,valor,data,categoria\n"
        "Mercado,250.40,05/01/2025,Alimentação\n"
        "Farmácia,abc,06/01/2025,Saúde\n"
    ).encode("utf-8")
    response = await client.post(
        "/api/v1/csv/import",
        files={"file": ("despesas.csv", content, "text/csv")},
        data={"create_missing_categories": "true"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["imported_count"] == 1
    assert body["created_categories"] == ["Alimentação"]
    assert [(e["row"], e["message"]) for e in body["errors"]] == [(3, "Invalid amount: abc")]


async def test_csv_template_download(client, payer):
    response = await client.get("/api/v1/csv/template")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert response.content.startswith(b"\xef\xbb\xbf")


async def test_requests_without_token_are_rejected(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/api/v1/payers")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 401


async def test_category_toggle_and_delete_in_use(client, payer, category):
    toggled = await client.patch(f"/api/v1/categories/{category.id}/toggle-active")
    assert toggled.status_code == 200
    assert toggled.json()["active"] is False

    await client.post("/api/v1/expenses", json=expense_payload(payer.id, category_id=str(category.id)))
    response = await client.delete(f"/api/v1/categories/{category.id}")
    assert response.status_code == 409
