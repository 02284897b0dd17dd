"""
Test operazioni massive sugli atleti
"""
import pytest
from datetime import date


@pytest.fixture
def club(fake_db):
    fake_db.seed("teams", [
        {"id": "team-1", "name": "Under 14"},
        {"id": "team-2", "name": "Under 16"},
    ])
    fake_db.seed("membership_fees", [
        {"id": "fee-1", "team_id": "team-1", "name": "Quota U14"},
        {"id": "fee-2", "team_id": "team-2", "name": "Quota U16"},
    ])
    fake_db.seed("predefined_installments", [
        {"membership_fee_id": "fee-1", "installment_number": 1, "due_date": "2024-09-01", "amount": 100},
        {"membership_fee_id": "fee-1", "installment_number": 2, "due_date": "2025-01-01", "amount": 100},
    ])
    fake_db.writes.clear()
    return fake_db


def bulk(client, headers, operation, athlete_ids, parameters=None, dry_run=False):
    return client.post("/api/admin/athletes/bulk", headers=headers, json={
        "operation": operation,
        "athleteIds": athlete_ids,
        "parameters": parameters or {},
        "dryRun": dry_run,
    })


class TestAssignToTeam:
    """Assegnazione a squadra"""

    def test_assigns_members(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "assign_to_team", ["a1", "a2"], {"teamId": "team-1", "jerseyNumber": "7"})

        assert response.status_code == 200
        body = response.json()
        assert body["affected"] == 2
        assert body["teamName"] == "Under 14"
        members = club.rows("team_members")
        assert {(m["profile_id"], m["team_id"], m["jersey_number"]) for m in members} == {
            ("a1", "team-1", 7), ("a2", "team-1", 7)
        }

    def test_assignment_is_upsert(self, client, admin_headers, club):
        bulk(client, admin_headers, "assign_to_team", ["a1"], {"teamId": "team-1", "jerseyNumber": "7"})
        bulk(client, admin_headers, "assign_to_team", ["a1"], {"teamId": "team-1", "jerseyNumber": "9"})

        members = club.rows("team_members")
        assert len(members) == 1
        assert members[0]["jersey_number"] == 9

    def test_with_fee_creates_installments(self, client, admin_headers, club):
        response = bulk(
            client, admin_headers, "assign_to_team", ["a1", "a2"],
            {"teamId": "team-1", "membershipFeeId": "fee-1"}
        )

        assert response.status_code == 200
        assert "Quota U14" in response.json()["message"]
        assert response.json()["installments_created"] == 4
        assert len(club.rows("fee_installments")) == 4

    def test_with_fee_replaces_existing_installments(self, client, admin_headers, club):
        params = {"teamId": "team-1", "membershipFeeId": "fee-1"}
        bulk(client, admin_headers, "assign_to_team", ["a1"], params)
        bulk(client, admin_headers, "assign_to_team", ["a1"], params)
        assert len(club.rows("fee_installments")) == 2

    def test_fee_of_other_team_is_rejected(self, client, admin_headers, club):
        response = bulk(
            client, admin_headers, "assign_to_team", ["a1"],
            {"teamId": "team-1", "membershipFeeId": "fee-2"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Il piano di pagamento non è associato alla squadra selezionata"}
        assert club.writes == []

    def test_missing_team(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "assign_to_team", ["a1"], {"teamId": "nope"})
        assert response.status_code == 404
        assert response.json() == {"error": "Squadra non trovata"}

    def test_missing_fee(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "assign_to_team", ["a1"], {"teamId": "team-1", "membershipFeeId": "nope"})
        assert response.status_code == 404
        assert response.json() == {"error": "Piano di pagamento non trovato"}

    def test_team_id_required(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "assign_to_team", ["a1"], {})
        assert response.status_code == 400
        assert response.json() == {"error": "ID squadra mancante"}


class TestDryRun:
    """dryRun riporta il conteggio reale senza scrivere"""

    @pytest.mark.parametrize("operation,parameters", [
        ("assign_to_team", {"teamId": "team-1", "jerseyNumber": "10", "membershipFeeId": "fee-1"}),
        ("remove_from_team", {"teamId": "team-1"}),
        ("update_jersey", {"teamId": "team-1", "jerseyNumber": "4"}),
        ("update_medical_expiry", {"expiryDate": "2025-06-30"}),
    ])
    def test_dry_run_matches_live_count_without_writes(self, client, admin_headers, club, operation, parameters):
        athletes = ["a1", "a2", "a3", "a2"]

        preview = bulk(client, admin_headers, operation, athletes, parameters, dry_run=True)

        assert preview.status_code == 200
        assert preview.json()["message"].startswith("DRY RUN")
        assert club.writes == []
        assert club.rows("team_members") == []

        live = bulk(client, admin_headers, operation, athletes, parameters)
        assert live.status_code == 200
        assert preview.json()["affected"] == live.json()["affected"] == 3


class TestOtherOperations:
    """Rimozione da squadra, numero di maglia, scadenza certificato"""

    def test_remove_from_team(self, client, admin_headers, club):
        club.seed("team_members", [
            {"profile_id": "a1", "team_id": "team-1"},
            {"profile_id": "a1", "team_id": "team-2"},
            {"profile_id": "a2", "team_id": "team-1"},
        ])
        response = bulk(client, admin_headers, "remove_from_team", ["a1"], {"teamId": "team-1"})

        assert response.status_code == 200
        assert {(m["profile_id"], m["team_id"]) for m in club.rows("team_members")} == {
            ("a1", "team-2"), ("a2", "team-1")
        }

    def test_update_jersey(self, client, admin_headers, club):
        club.seed("team_members", [{"profile_id": "a1", "team_id": "team-1", "jersey_number": 3}])
        response = bulk(client, admin_headers, "update_jersey", ["a1"], {"teamId": "team-1", "jerseyNumber": "11"})

        assert response.status_code == 200
        assert club.rows("team_members")[0]["jersey_number"] == 11

    def test_update_jersey_requires_params(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "update_jersey", ["a1"], {"teamId": "team-1"})
        assert response.status_code == 400
        assert response.json() == {"error": "Numero maglia o ID squadra mancanti"}

    def test_invalid_jersey(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "update_jersey", ["a1"], {"teamId": "team-1", "jerseyNumber": "dieci"})
        assert response.status_code == 400

    def test_update_medical_expiry_upserts(self, client, admin_headers, club):
        club.seed("athlete_profiles", [{"profile_id": "a1", "medical_certificate_expiry": "2024-01-01"}])
        response = bulk(client, admin_headers, "update_medical_expiry", ["a1", "a2"], {"expiryDate": "2025-06-30"})

        assert response.status_code == 200
        rows = {r["profile_id"]: r["medical_certificate_expiry"] for r in club.rows("athlete_profiles")}
        assert rows == {"a1": "2025-06-30", "a2": "2025-06-30"}

    def test_invalid_expiry(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "update_medical_expiry", ["a1"], {"expiryDate": "31/06/2025"})
        assert response.status_code == 400
        assert response.json() == {"error": "Data scadenza non valida"}

    def test_unknown_operation(self, client, admin_headers, club):
        response = bulk(client, admin_headers, "teleport", ["a1"])
        assert response.status_code == 400
        assert response.json() == {"error": "Operazione non supportata"}

    def test_missing_athletes(self, client, admin_headers, club):
        response = client.post("/api/admin/athletes/bulk", headers=admin_headers, json={"operation": "remove_from_team"})
        assert response.status_code == 400
        assert response.json() == {"error": "Parametri mancanti o non validi"}
