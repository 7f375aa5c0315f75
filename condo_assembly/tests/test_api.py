"""
HTTP API tests - routing, identity headers, error bodies and one full assembly
"""
from datetime import timedelta

API = "/api/assemblies"


# ===================== APP =====================


async def test_root_and_health(unauth_client):
    root = await unauth_client.get("/")
    assert root.status_code == 200
    assert root.json()["status"] == "running"

    health = await unauth_client.get("/health")
    assert health.json() == {"status": "healthy"}


async def test_identity_headers_required(unauth_client):
    response = await unauth_client.get(f"{API}/")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


async def test_residents_cannot_manage(resident_client, scheduled_assembly):
    listed = await resident_client.get(f"{API}/")
    assert listed.status_code == 200
    assert [a["id"] for a in listed.json()] == [scheduled_assembly.id]

    response = await resident_client.post(f"{API}/{scheduled_assembly.id}/start")
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


async def test_error_body_carries_code(client):
    response = await client.get(f"{API}/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"detail": "Assembly does-not-exist not found", "code": "NOT_FOUND"}


async def test_other_tenant_sees_nothing(client, scheduled_assembly, seed_data):
    response = await client.get(
        f"{API}/{scheduled_assembly.id}", headers={"X-Tenant-Id": seed_data["other_tenant"].id}
    )
    assert response.status_code == 404


# ===================== ASSEMBLIES =====================


async def test_create_and_transitions(client, clock):
    created = await client.post(f"{API}/", json={
        "title": "AGO 2026",
        "scheduled_at": (clock.now() + timedelta(days=3)).isoformat(),
    })
    assert created.status_code == 201
    assembly = created.json()
    assert assembly["status"] == "scheduled"

    upcoming = await client.get(f"{API}/upcoming")
    assert [a["id"] for a in upcoming.json()] == [assembly["id"]]

    finish_early = await client.post(f"{API}/{assembly['id']}/finish")
    assert finish_early.status_code == 400
    assert finish_early.json()["code"] == "INVALID_STATE"

    started = await client.post(f"{API}/{assembly['id']}/start")
    assert started.json()["status"] == "in_progress"

    deleted = await client.delete(f"{API}/{assembly['id']}")
    assert deleted.status_code == 400


async def test_public_token_validation(unauth_client, running_assembly):
    valid = await unauth_client.get(f"{API}/checkin/validate/checkin-token-running")
    assert valid.status_code == 200
    body = valid.json()
    assert body["valid"] is True
    assert body["assembly"]["title"] == "Assembleia Extraordinaria"

    invalid = await unauth_client.get(f"{API}/checkin/validate/unknown")
    assert invalid.json()["valid"] is False


async def test_unknown_session(unauth_client):
    response = await unauth_client.get(f"{API}/session/not-a-session/status")
    assert response.status_code == 401


# ===================== FULL ASSEMBLY =====================


async def test_full_assembly_flow(client, seed_data, clock):
    units = seed_data["units"]
    residents = seed_data["residents"]

    assembly = (await client.post(f"{API}/", json={
        "title": "Assembleia Geral Extraordinaria",
        "description": "Reforma da fachada",
        "scheduled_at": (clock.now() + timedelta(hours=1)).isoformat(),
    })).json()
    assembly_id = assembly["id"]

    item = await client.post(f"{API}/{assembly_id}/agenda-items", json={"title": "Reforma da fachada"})
    assert item.status_code == 201
    item_id = item.json()["id"]

    token = (await client.post(f"{API}/{assembly_id}/generate-checkin-token")).json()["checkin_token"]

    clock.advance(hours=1)
    assert (await client.post(f"{API}/{assembly_id}/start")).status_code == 200

    clock.queue_codes(123123)
    door = await client.post(f"{API}/{assembly_id}/otp/generate")
    assert door.json()["otp"] == "123123"
    assert door.json()["remaining_seconds"] == 600

    pre_check = await client.post(f"{API}/checkin/validate-otp/{token}", json={"otp": "123123"})
    assert pre_check.json() == {"valid": True, "assembly_id": assembly_id}

    sessions = []
    for unit, resident in zip(units[:3], residents[:3]):
        checkin = await client.post(f"{API}/checkin", json={
            "checkin_token": token,
            "unit_id": unit.id,
            "otp": "123123",
            "resident_id": resident.id,
        })
        assert checkin.status_code == 200
        assert checkin.json()["approval_status"] == "approved"
        sessions.append(checkin.json()["session_token"])

    again = await client.post(f"{API}/checkin", json={
        "checkin_token": token, "unit_id": units[0].id, "otp": "123123", "resident_id": residents[0].id,
    })
    assert again.status_code == 409

    attendance = (await client.get(f"{API}/{assembly_id}/attendance")).json()
    assert attendance["currently_present"] == 3
    assert attendance["quorum_percentage"] == 30.0

    clock.queue_codes(654321)
    opened = await client.post(f"{API}/{assembly_id}/agenda-items/{item_id}/start-voting")
    assert opened.json()["status"] == "voting"
    ballot_code = (await client.get(f"{API}/{assembly_id}/agenda-items/{item_id}/otp")).json()["otp"]
    assert ballot_code == "654321"

    agenda = (await client.get(f"{API}/session/{sessions[0]}/agenda")).json()
    assert agenda[0]["voting_otp_required"] is True

    no_code = await client.post(f"{API}/session/{sessions[0]}/vote", json={
        "agenda_item_id": item_id, "choice": "YES",
    })
    assert no_code.status_code == 401

    for session_token, choice in zip(sessions, ["YES", "YES", "NO"]):
        vote = await client.post(f"{API}/session/{session_token}/vote", json={
            "agenda_item_id": item_id, "choice": choice, "otp": ballot_code,
        })
        assert vote.status_code == 201

    duplicate = await client.post(f"{API}/session/{sessions[0]}/vote", json={
        "agenda_item_id": item_id, "choice": "NO", "otp": ballot_code,
    })
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"

    still_open = await client.post(f"{API}/{assembly_id}/finish")
    assert still_open.status_code == 400

    closed = await client.post(f"{API}/{assembly_id}/agenda-items/{item_id}/close-voting")
    assert closed.json()["result"] == (
        "Aprovado - Sim: 2 (66.7%) | Nao: 1 (33.3%) | Abstencoes: 0 | Total: 3 votos"
    )

    result = (await client.get(f"{API}/{assembly_id}/agenda-items/{item_id}/result")).json()
    assert result["approved"] is True
    assert result["weighted_total"] == 3.0
    assert result["yes_percentage"] == 66.67

    assert (await client.post(f"{API}/{assembly_id}/finish")).json()["status"] == "finished"

    minutes = await client.post(f"{API}/{assembly_id}/minutes/generate")
    assert minutes.status_code == 200
    assert minutes.json()["status"] == "draft"
    assert minutes.json()["attendance_summary"]["present_units"] == 3

    assert (await client.post(f"{API}/{assembly_id}/minutes/approve")).json()["approved_by"] == "syndic-1"
    assert (await client.post(f"{API}/{assembly_id}/minutes/publish")).json()["status"] == "published"


async def test_proxy_flow(client, running_assembly, seed_data, clock):
    assembly_id = running_assembly.id
    clock.queue_codes(222333)
    await client.post(f"{API}/{assembly_id}/otp/generate")

    checkin = (await client.post(f"{API}/checkin", json={
        "checkin_token": "checkin-token-running",
        "unit_id": seed_data["units"][4].id,
        "otp": "222333",
        "proxy_name": "Paulo Procurador",
        "proxy_document": "98765432100",
    })).json()
    assert checkin["approval_status"] == "pending"

    status = (await client.get(f"{API}/session/{checkin['session_token']}/status")).json()
    assert status["can_vote"] is False

    pending = (await client.get(f"{API}/{assembly_id}/pending-proxies")).json()
    assert [p["proxy_name"] for p in pending] == ["Paulo Procurador"]
    assert pending[0]["unit_identifier"] == "A-105"

    no_reason = await client.post(
        f"{API}/{assembly_id}/participants/{checkin['participant_id']}/reject", json={"reason": ""}
    )
    assert no_reason.status_code == 400

    approved = await client.post(f"{API}/{assembly_id}/participants/{checkin['participant_id']}/approve")
    assert approved.json()["approval_status"] == "approved"

    status = (await client.get(f"{API}/session/{checkin['session_token']}/status")).json()
    assert status["can_vote"] is True
    assert status["message"] == "You can vote"


async def test_checkin_rejects_oversized_proxy_document(client, running_assembly, seed_data):
    response = await client.post(f"{API}/checkin", json={
        "checkin_token": "checkin-token-running",
        "unit_id": seed_data["units"][4].id,
        "proxy_name": "Paulo Procurador",
        "proxy_document": "9" * 21,
    })
    assert response.status_code == 422

    pending = (await client.get(f"{API}/{running_assembly.id}/pending-proxies")).json()
    assert pending == []
