import pytest
from httpx import AsyncClient

from .factories import build_template_create


def _template_payload() -> dict:
    return build_template_create().model_dump(mode="json", by_alias=True)


async def _generate_january(api_client: AsyncClient, villa_id: int) -> dict:
    template = await api_client.post("/api/templates/", json=_template_payload())
    assert template.status_code == 201
    response = await api_client.post(
        "/api/planning-assignment/generate",
        json={
            "templateId": template.json()["template"]["id"],
            "startDate": "2026-01-01",
            "endDate": "2026-01-31",
            "scope": "villa",
            "villaId": villa_id,
        },
    )
    assert response.status_code == 200
    return response.json()


async def _january(api_client: AsyncClient) -> list[dict]:
    response = await api_client.get("/api/planning-assignment/month/2026/1")
    assert response.status_code == 200
    return response.json()["affectations"]


@pytest.mark.anyio("asyncio")
async def test_generate_then_reapply(api_client: AsyncClient, api_villa: dict) -> None:
    generated = await _generate_january(api_client, api_villa["id"])

    assert generated["success"] is True
    assert generated["created"] == 22
    assert [planning["villaId"] for planning in generated["plannings"]] == [api_villa["id"]]
    shifts = await _january(api_client)
    assert len(shifts) == 22
    assert shifts[0]["start"] == "2026-01-01T08:00:00"
    assert shifts[0]["isFromSquelette"] is True

    template_id = (await api_client.get("/api/templates/")).json()[0]["id"]
    again = await api_client.post(
        "/api/planning-assignment/generate",
        json={
            "templateId": template_id,
            "startDate": "2026-01-01",
            "endDate": "2026-01-31",
            "villaId": api_villa["id"],
        },
    )
    assert again.json()["created"] == 0
    assert {week["reason"] for week in again.json()["skippedWeeks"]} == {"already_populated"}


@pytest.mark.anyio("asyncio")
async def test_generate_errors(api_client: AsyncClient, api_villa: dict) -> None:
    unknown = await api_client.post(
        "/api/planning-assignment/generate",
        json={"templateId": 999, "startDate": "2026-01-01", "endDate": "2026-01-31", "villaId": api_villa["id"]},
    )
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Template not found"}

    template = await api_client.post("/api/templates/", json=_template_payload())
    reversed_range = await api_client.post(
        "/api/planning-assignment/generate",
        json={
            "templateId": template.json()["template"]["id"],
            "startDate": "2026-01-31",
            "endDate": "2026-01-01",
            "villaId": api_villa["id"],
        },
    )
    assert reversed_range.status_code == 400
    assert reversed_range.json() == {"error": "startDate must not be after endDate"}


@pytest.mark.anyio("asyncio")
async def test_assignment_conflict_is_reported_with_success(
    api_client: AsyncClient, api_villa: dict, api_educator: dict
) -> None:
    await _generate_january(api_client, api_villa["id"])
    absence_type = await api_client.post("/api/absences/types", json={"code": "MAL", "label": "Arrêt maladie"})
    absence = await api_client.post(
        "/api/absences/",
        json={
            "userId": api_educator["id"],
            "absenceTypeId": absence_type.json()["id"],
            "startDate": "2026-01-10",
            "endDate": "2026-01-12",
        },
    )
    await api_client.post(f"/api/absences/{absence.json()['id']}/approve")
    target = next(shift for shift in await _january(api_client) if shift["start"].startswith("2026-01-12"))

    response = await api_client.post(
        "/api/planning-assignment/assign", json={"affectationId": target["id"], "userId": api_educator["id"]}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "to_replace_absence"
    assert "absence_conflict" in [warning["type"] for warning in body["warnings"]]

    warnings = await api_client.get(f"/api/planning-assignment/warnings/{target['id']}")
    assert "absence_conflict" in [warning["type"] for warning in warnings.json()["warnings"]]

    availability = await api_client.get(
        "/api/planning-assignment/availability",
        params={"userId": api_educator["id"], "startDate": "2026-01-01", "endDate": "2026-01-31"},
    )
    assert [(period["source"], period["start"]) for period in availability.json()["periods"]] == [
        ("absence", "2026-01-10T00:00:00"),
        ("shift", "2026-01-12T08:00:00"),
    ]


@pytest.mark.anyio("asyncio")
async def test_availability_errors(api_client: AsyncClient, api_educator: dict) -> None:
    reversed_range = await api_client.get(
        "/api/planning-assignment/availability",
        params={"userId": api_educator["id"], "startDate": "2026-01-31", "endDate": "2026-01-01"},
    )
    assert reversed_range.status_code == 400

    unknown = await api_client.get(
        "/api/planning-assignment/availability",
        params={"userId": 999, "startDate": "2026-01-01", "endDate": "2026-01-31"},
    )
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "User not found"}


@pytest.mark.anyio("asyncio")
async def test_hours_update_uses_versions(api_client: AsyncClient, api_villa: dict) -> None:
    created = await api_client.post(
        "/api/planning-assignment/create",
        json={
            "villaId": api_villa["id"],
            "type": "garde_48h",
            "startAt": "2026-01-05T07:00:00",
            "endAt": "2026-01-07T07:00:00",
        },
    )
    assert created.status_code == 201
    assert created.json()["workingDays"] == 3
    shift_id = created.json()["affectationId"]
    version = (await _january(api_client))[0]["version"]

    stale = await api_client.put(
        f"/api/planning-assignment/hours/{shift_id}",
        json={"startAt": "2026-01-09T20:00:00", "endAt": "2026-01-12T08:00:00", "version": version + 1},
    )
    assert stale.status_code == 409
    assert "error" in stale.json()

    updated = await api_client.put(
        f"/api/planning-assignment/hours/{shift_id}",
        json={"startAt": "2026-01-09T20:00:00", "endAt": "2026-01-12T08:00:00", "version": version},
    )
    assert updated.status_code == 200
    assert updated.json()["workingDays"] == 2
    assert (await _january(api_client))[0]["version"] == version + 1

    missing = await api_client.put(
        "/api/planning-assignment/hours/999", json={"startAt": "2026-01-09T20:00:00", "endAt": "2026-01-12T08:00:00"}
    )
    assert missing.status_code == 404
    assert missing.json() == {"error": "Shift #999 not found"}


@pytest.mark.anyio("asyncio")
async def test_publication_workflow(api_client: AsyncClient, api_villa: dict, api_educator: dict) -> None:
    generated = await _generate_january(api_client, api_villa["id"])
    planning_id = generated["plannings"][0]["id"]
    await api_client.post(f"/api/counters/annual/{api_educator['id']}", json={"year": 2026})
    first = (await _january(api_client))[0]
    assigned = await api_client.post(
        "/api/planning-assignment/assign", json={"affectationId": first["id"], "userId": api_educator["id"]}
    )
    assert assigned.json() == {"success": True, "status": "draft", "warnings": []}

    report = await api_client.post("/api/planning-assignment/validate", json={"planningId": planning_id})
    assert report.json()["valid"] is True
    assert len(report.json()["unassigned"]) == 21

    too_early = await api_client.post("/api/planning-assignment/publish", json={"planningId": planning_id})
    assert too_early.status_code == 409

    validated = await api_client.post("/api/planning-assignment/validate-month", json={"year": 2026, "month": 1})
    assert validated.json()["validated"] == 22
    assert validated.json()["message"] == "22 shift(s) validated for 01/2026"

    published = await api_client.post(
        "/api/planning-assignment/publish", json={"planningId": planning_id, "publishedBy": "direction"}
    )
    assert published.status_code == 200
    body = published.json()
    assert body["status"] == "published"
    assert (body["deductedShifts"], body["deductedDays"]) == (1, 1)
    assert body["failures"] == []
    assert len(body["warnings"]) == 21

    counter = await api_client.get(f"/api/counters/annual/{api_educator['id']}", params={"year": 2026})
    assert counter.json()["consumed"] == 1
    assert counter.json()["remaining"] == 257

    frozen = await api_client.post(
        "/api/planning-assignment/assign", json={"affectationId": first["id"], "userId": None}
    )
    assert frozen.status_code == 409
    republished = await api_client.post("/api/planning-assignment/publish", json={"planningId": planning_id})
    assert republished.status_code == 409

    reopened = await api_client.post("/api/planning-assignment/reopen", json={"planningId": planning_id})
    assert reopened.json()["restoredShifts"] == 1
    assert reopened.json()["status"] == "draft"
    counter = await api_client.get(f"/api/counters/annual/{api_educator['id']}", params={"year": 2026})
    assert counter.json()["consumed"] == 0


@pytest.mark.anyio("asyncio")
async def test_unknown_planning(api_client: AsyncClient) -> None:
    for path in ("validate", "publish", "reopen"):
        response = await api_client.post(f"/api/planning-assignment/{path}", json={"planningId": 999})
        assert response.status_code == 404
        assert response.json() == {"error": "Planning not found"}


@pytest.mark.anyio("asyncio")
async def test_batch_update_isolates_failures(api_client: AsyncClient, api_villa: dict, api_educator: dict) -> None:
    await _generate_january(api_client, api_villa["id"])
    await api_client.post(f"/api/counters/annual/{api_educator['id']}", json={"year": 2026})
    first, second = (await _january(api_client))[:2]

    response = await api_client.post(
        "/api/planning-assignment/batch-update",
        json={
            "changes": [
                {"affectationId": first["id"], "type": "assign", "data": {"userId": api_educator["id"]}},
                {"affectationId": 999, "type": "delete"},
                {"affectationId": second["id"], "type": "update", "data": {"comment": "Covered by Alice"}},
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 2
    assert [(warning["type"], warning["affectationId"]) for warning in body["warnings"]] == [("not_found", 999)]
    shifts = await _january(api_client)
    assert shifts[0]["user"]["fullName"] == "Alice Dupont"
    assert shifts[1]["comment"] == "Covered by Alice"

    empty = await api_client.post("/api/planning-assignment/batch-update", json={"changes": []})
    assert empty.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_bulk_delete_keeps_published_months(api_client: AsyncClient, api_villa: dict) -> None:
    generated = await _generate_january(api_client, api_villa["id"])
    planning_id = generated["plannings"][0]["id"]

    deleted = await api_client.post(
        "/api/planning-assignment/bulk-delete", json={"year": 2026, "month": 1, "villaId": api_villa["id"]}
    )
    assert deleted.json() == {"success": True, "deleted": 22}
    assert await _january(api_client) == []

    template_id = (await api_client.get("/api/templates/")).json()[0]["id"]
    await api_client.post(
        "/api/planning-assignment/generate",
        json={
            "templateId": template_id,
            "startDate": "2026-01-01",
            "endDate": "2026-01-31",
            "villaId": api_villa["id"],
        },
    )
    await api_client.post("/api/planning-assignment/validate-month", json={"year": 2026, "month": 1})
    await api_client.post("/api/planning-assignment/publish", json={"planningId": planning_id})

    kept = await api_client.post("/api/planning-assignment/bulk-delete", json={"year": 2026})
    assert kept.json()["deleted"] == 0
    assert len(await _january(api_client)) == 22
