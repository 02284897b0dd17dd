"""
Test uscite (spese generali e compensi allenatori)
"""
import pytest

from sportclub.errors import NotFound, ValidationFailure
from sportclub.payments.models import PaymentCreate, PaymentUpdate
from sportclub.payments.service import PaymentService


@pytest.fixture
def lookups(fake_db):
    fake_db.seed("gyms", [{"id": "gym-1", "name": "Palestra Nord", "address": "Via Roma 1"}])
    fake_db.seed("activities", [{"id": "act-1", "name": "Pallavolo"}])
    fake_db.seed("teams", [{"id": "team-1", "name": "Under 14", "code": "U14"}])
    fake_db.seed("profiles", [
        {"id": "c1", "first_name": "Paolo", "last_name": "Blu"},
        {"id": "admin-1", "first_name": "Anna", "last_name": "Bianchi"},
    ])
    return fake_db


class TestPaymentModels:
    """Normalizzazione dei campi dal form"""

    def test_defaults(self):
        payload = PaymentCreate(amount="12,5", status="to_pay", gym_id="")
        assert payload.type.value == "general_cost"
        assert payload.frequency.value == "one_time"
        assert payload.status.value == "pending"
        assert payload.amount == 12.5
        assert payload.gym_id is None

    def test_update_keeps_missing_status_unset(self):
        payload = PaymentUpdate(id="pay-1", amount="5")
        assert "status" not in payload.model_dump(exclude_unset=True)
        assert PaymentUpdate(id="pay-1", status="to_pay").status.value == "pending"


class TestPaymentService:
    """CRUD uscite"""

    @pytest.mark.asyncio
    async def test_create_general_cost_clears_coach(self, lookups):
        payment = await PaymentService(lookups).create_payment(
            PaymentCreate(description="Affitto", amount=300, coach_id="c1", due_date="2024-02-01"),
            created_by="admin-1"
        )
        assert payment["coach_id"] is None
        assert payment["created_by"] == "admin-1"
        assert payment["due_date"] == "2024-02-01"
        assert payment["status"] == "pending"

    @pytest.mark.asyncio
    async def test_coach_payment_requires_coach(self, lookups):
        with pytest.raises(ValidationFailure):
            await PaymentService(lookups).create_payment(
                PaymentCreate(type="coach_payment", amount=200), created_by="admin-1"
            )
        assert lookups.rows("payments") == []

    @pytest.mark.asyncio
    async def test_list_enriched_undated_first(self, lookups):
        lookups.seed("payments", [
            {"id": "p-late", "type": "general_cost", "amount": 10, "due_date": "2024-05-01", "gym_id": "gym-1"},
            {"id": "p-none", "type": "coach_payment", "amount": 20, "due_date": None, "coach_id": "c1",
             "created_by": "admin-1"},
            {"id": "p-early", "type": "general_cost", "amount": 30, "due_date": "2024-01-01", "team_id": "team-1"},
        ])

        payments = await PaymentService(lookups).list_payments()

        assert [p["id"] for p in payments] == ["p-none", "p-early", "p-late"]
        assert payments[0]["coaches"]["first_name"] == "Paolo"
        assert payments[0]["created_by_profile"] == {"first_name": "Anna", "last_name": "Bianchi"}
        assert payments[1]["teams"]["code"] == "U14"
        assert payments[2]["gyms"]["name"] == "Palestra Nord"
        assert payments[2]["activities"] is None

    @pytest.mark.asyncio
    async def test_list_lookup_failure_keeps_payments(self, lookups):
        lookups.seed("payments", [{"id": "p-1", "amount": 10, "gym_id": "gym-1"}])
        lookups.fail("gyms", "select")

        payments = await PaymentService(lookups).list_payments()

        assert payments[0]["id"] == "p-1"
        assert payments[0]["gyms"] is None

    @pytest.mark.asyncio
    async def test_update_only_sent_fields(self, lookups):
        lookups.seed("payments", [
            {"id": "pay-1", "type": "coach_payment", "amount": 100, "coach_id": "c1", "status": "pending"},
        ])

        await PaymentService(lookups).update_payment(PaymentUpdate(id="pay-1", status="paid"))

        row = lookups.rows("payments")[0]
        assert row["status"] == "paid"
        assert row["coach_id"] == "c1"
        assert row["amount"] == 100

    @pytest.mark.asyncio
    async def test_update_missing_is_not_found(self, lookups):
        with pytest.raises(NotFound):
            await PaymentService(lookups).update_payment(PaymentUpdate(id="missing", amount=1))

    @pytest.mark.asyncio
    async def test_update_without_fields(self, lookups):
        with pytest.raises(ValidationFailure):
            await PaymentService(lookups).update_payment(PaymentUpdate(id="pay-1"))


class TestPaymentsApi:
    """Livello HTTP"""

    def test_create(self, client, admin_headers, lookups):
        response = client.post("/api/admin/payments", headers=admin_headers, json={
            "type": "coach_payment", "amount": "150", "coach_id": "c1", "status": "to_pay",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Pagamento creato con successo"
        assert body["payment"]["status"] == "pending"
        assert lookups.rows("payments")[0]["created_by"] == "admin-1"

    def test_create_coach_payment_without_coach_is_400(self, client, admin_headers, lookups):
        response = client.post("/api/admin/payments", headers=admin_headers, json={
            "type": "coach_payment", "amount": 150,
        })
        assert response.status_code == 400
        assert response.json() == {"error": "coach_id richiesto per type=coach_payment"}

    def test_create_failure(self, client, admin_headers, lookups):
        lookups.fail("payments", "insert", message="violates check constraint")
        response = client.post("/api/admin/payments", headers=admin_headers, json={"amount": 10})
        assert response.status_code == 400
        assert response.json()["error"] == "violates check constraint"

    def test_list(self, client, admin_headers, lookups):
        lookups.seed("payments", [{"id": "p-1", "amount": 10, "gym_id": "gym-1"}])
        response = client.get("/api/admin/payments", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["payments"][0]["gyms"]["name"] == "Palestra Nord"

    def test_list_read_failure_is_400(self, client, admin_headers, lookups):
        lookups.fail("payments", "select")
        response = client.get("/api/admin/payments", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "boom"

    def test_update_switch_to_general_cost_clears_coach(self, client, admin_headers, lookups):
        lookups.seed("payments", [{"id": "pay-1", "type": "coach_payment", "amount": 100, "coach_id": "c1"}])
        response = client.patch("/api/admin/payments", headers=admin_headers, json={
            "id": "pay-1", "type": "general_cost",
        })
        assert response.status_code == 200
        assert lookups.rows("payments")[0]["coach_id"] is None

    def test_update_requires_id(self, client, admin_headers):
        response = client.patch("/api/admin/payments", headers=admin_headers, json={"amount": 5})
        assert response.status_code == 400
        assert response.json() == {"error": "ID pagamento richiesto"}

    def test_delete(self, client, admin_headers, lookups):
        lookups.seed("payments", [{"id": "pay-1", "amount": 100}])
        response = client.delete("/api/admin/payments?id=pay-1", headers=admin_headers)
        assert response.status_code == 200
        assert lookups.rows("payments") == []

    def test_delete_missing_is_404(self, client, admin_headers, lookups):
        response = client.delete("/api/admin/payments?id=missing", headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Pagamento non trovato"}

    def test_delete_requires_id(self, client, admin_headers):
        response = client.delete("/api/admin/payments", headers=admin_headers)
        assert response.status_code == 400
