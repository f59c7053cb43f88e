import pytest
from httpx import AsyncClient

from .factories import build_leave_type_create


async def _paid_leave(api_client: AsyncClient) -> dict:
    response = await api_client.post(
        "/api/absences/types", json=build_leave_type_create().model_dump(mode="json", by_alias=True)
    )
    assert response.status_code == 201
    return response.json()


async def _request_leave(api_client: AsyncClient, user_id: int, absence_type_id: int, **dates: str) -> dict:
    payload = {"userId": user_id, "absenceTypeId": absence_type_id, "startDate": "2026-01-05", "endDate": "2026-01-09"}
    payload.update(dates)
    response = await api_client.post("/api/absences/", json=payload)
    assert response.status_code == 201
    return response.json()


async def _leave_counters(api_client: AsyncClient, user_id: int, year: int) -> list[dict]:
    response = await api_client.get(f"/api/absences/compteurs/{user_id}", params={"year": year})
    assert response.status_code == 200
    return response.json()


@pytest.mark.anyio("asyncio")
async def test_absence_type_codes_are_unique(api_client: AsyncClient) -> None:
    await _paid_leave(api_client)

    duplicate = await api_client.post("/api/absences/types", json={"code": "CP", "label": "Congés"})

    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "Absence type code already exists"}
    assert [item["code"] for item in (await api_client.get("/api/absences/types")).json()] == ["CP"]


@pytest.mark.anyio("asyncio")
async def test_leave_lifecycle_moves_the_counter(api_client: AsyncClient, api_educator: dict) -> None:
    paid_leave = await _paid_leave(api_client)
    absence = await _request_leave(api_client, api_educator["id"], paid_leave["id"])
    assert absence["status"] == "pending"
    assert absence["workingDays"] == 5

    pending = await api_client.get("/api/absences/", params={"userId": api_educator["id"], "status": "pending"})
    assert [item["id"] for item in pending.json()] == [absence["id"]]

    approved = await api_client.post(f"/api/absences/{absence['id']}/approve")
    assert approved.json()["status"] == "approved"
    assert approved.json()["deducted"] is True
    (counter,) = await _leave_counters(api_client, api_educator["id"], 2025)
    assert counter["type"] == {"code": "CP", "label": "Congés payés"}
    assert (counter["year"], counter["period"]) == (2025, "2025-2026")
    assert (counter["earned"], counter["taken"], counter["remaining"]) == (25, 5, 20)
    assert counter["isNegative"] is False

    again = await api_client.post(f"/api/absences/{absence['id']}/approve")
    assert again.status_code == 409

    cancelled = await api_client.post(f"/api/absences/{absence['id']}/cancel")
    assert cancelled.json()["status"] == "cancelled"
    (counter,) = await _leave_counters(api_client, api_educator["id"], 2025)
    assert counter["taken"] == 0


@pytest.mark.anyio("asyncio")
async def test_refused_absence_is_final(api_client: AsyncClient, api_educator: dict) -> None:
    paid_leave = await _paid_leave(api_client)
    absence = await _request_leave(api_client, api_educator["id"], paid_leave["id"])

    refused = await api_client.post(f"/api/absences/{absence['id']}/refuse")
    assert refused.json()["status"] == "refused"
    assert (await api_client.post(f"/api/absences/{absence['id']}/approve")).status_code == 409
    assert await _leave_counters(api_client, api_educator["id"], 2025) == []

    missing = await api_client.post("/api/absences/999/approve")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Absence #999 not found"}


@pytest.mark.anyio("asyncio")
async def test_absence_request_errors(api_client: AsyncClient, api_educator: dict) -> None:
    paid_leave = await _paid_leave(api_client)

    unknown_user = await api_client.post(
        "/api/absences/",
        json={"userId": 999, "absenceTypeId": paid_leave["id"], "startDate": "2026-01-05", "endDate": "2026-01-09"},
    )
    assert unknown_user.status_code == 404
    assert unknown_user.json() == {"error": "User #999 not found"}

    reversed_range = await api_client.post(
        "/api/absences/",
        json={
            "userId": api_educator["id"],
            "absenceTypeId": paid_leave["id"],
            "startDate": "2026-01-09",
            "endDate": "2026-01-05",
        },
    )
    assert reversed_range.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_check_balance(api_client: AsyncClient, api_educator: dict) -> None:
    paid_leave = await _paid_leave(api_client)

    response = await api_client.post(
        "/api/absences/check-balance",
        json={
            "userId": api_educator["id"],
            "absenceTypeId": paid_leave["id"],
            "workingDays": 30,
            "startDate": "2026-01-05",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["hasCounter"] is False
    assert body["hasSufficientBalance"] is False
    assert body["deficit"] == 5
    assert body["remaining"] == 25
    listed = await api_client.get(f"/api/absences/compteurs/{api_educator['id']}", params={"year": 2025})
    assert listed.json() == []

    incomplete = await api_client.post(
        "/api/absences/check-balance", json={"userId": api_educator["id"], "absenceTypeId": paid_leave["id"]}
    )
    assert incomplete.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_calculate_working_days(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/absences/calculate-working-days", json={"startDate": "2026-01-01", "endDate": "2026-01-31"}
    )

    assert response.json() == {"startDate": "2026-01-01", "endDate": "2026-01-31", "workingDays": 21}

    reversed_range = await api_client.post(
        "/api/absences/calculate-working-days", json={"startDate": "2026-01-31", "endDate": "2026-01-01"}
    )
    assert reversed_range.status_code == 400
    assert reversed_range.json() == {"error": "endDate must not be before startDate"}


@pytest.mark.anyio("asyncio")
async def test_annual_counter_endpoints(api_client: AsyncClient, api_educator: dict) -> None:
    before = await api_client.get(f"/api/counters/annual/{api_educator['id']}", params={"year": 2026})
    assert before.status_code == 404
    assert before.json() == {"error": "No annual day counter for 2026"}

    opened = await api_client.post(f"/api/counters/annual/{api_educator['id']}", json={"year": 2026})
    assert opened.status_code == 201
    assert opened.json()["kind"] == "annual_days"
    assert opened.json()["allocated"] == 258

    adjusted = await api_client.post(
        f"/api/counters/annual/{api_educator['id']}/adjust",
        json={"year": 2026, "adjustment": -3, "comment": "Carried over hours"},
    )
    assert adjusted.json()["remaining"] == 255
    assert adjusted.json()["adjustmentComment"] == "Carried over hours"
    assert adjusted.json()["id"] == opened.json()["id"]
    read = await api_client.get(f"/api/counters/annual/{api_educator['id']}", params={"year": 2026})
    assert read.json()["remaining"] == 255
    duplicate = await api_client.post(f"/api/counters/annual/{api_educator['id']}", json={"year": 2026})
    assert duplicate.status_code == 409

    movements = await api_client.get(f"/api/counters/{opened.json()['id']}/movements")
    assert [(item["operation"], item["days"], item["reference"]) for item in movements.json()] == [
        ("adjust", -3, "Carried over hours")
    ]
    assert (await api_client.get("/api/counters/999/movements")).status_code == 404

    missing = await api_client.get("/api/counters/annual/999")
    assert missing.status_code == 404
    assert missing.json() == {"error": "User not found"}


@pytest.mark.anyio("asyncio")
async def test_leave_roll_carries_remaining_days(api_client: AsyncClient, api_educator: dict) -> None:
    paid_leave = await _paid_leave(api_client)
    absence = await _request_leave(api_client, api_educator["id"], paid_leave["id"])
    await api_client.post(f"/api/absences/{absence['id']}/approve")

    rolled = await api_client.post(
        f"/api/counters/leave/{api_educator['id']}/roll", json={"absenceTypeCode": "CP", "period": "2026-2027"}
    )

    assert rolled.status_code == 201
    assert rolled.json()["openingBalance"] == 20
    assert rolled.json()["remaining"] == 45

    again = await api_client.post(
        f"/api/counters/leave/{api_educator['id']}/roll", json={"absenceTypeCode": "CP", "period": "2026-2027"}
    )
    assert again.status_code == 409

    calendar_year = await api_client.post(
        f"/api/counters/leave/{api_educator['id']}/roll", json={"absenceTypeCode": "CP", "period": "2027"}
    )
    assert calendar_year.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_year_reset_opens_missing_annual_counters(api_client: AsyncClient, api_educator: dict) -> None:
    colleague = await api_client.post(
        "/api/users",
        json={"firstName": "Bruno", "lastName": "Martin", "email": "bruno.martin@example.org", "hiredOn": "2027-03-01"},
    )
    await api_client.post(f"/api/counters/annual/{api_educator['id']}/adjust", json={"year": 2026, "adjustment": 2})

    reset = await api_client.post("/api/counters/annual/reset", json={"year": 2026})

    assert reset.status_code == 200
    assert reset.json() == {"year": 2026, "created": [], "skipped": [api_educator["id"]]}

    next_year = await api_client.post("/api/counters/annual/reset", json={"year": 2027})
    assert next_year.json()["created"] == [api_educator["id"], colleague.json()["id"]]
    counter = await api_client.get(f"/api/counters/annual/{colleague.json()['id']}", params={"year": 2027})
    assert counter.json()["allocated"] == 258
    assert counter.json()["consumed"] == 0


@pytest.mark.anyio("asyncio")
async def test_monthly_leave_credit(api_client: AsyncClient, api_educator: dict) -> None:
    await _paid_leave(api_client)
    newcomer = await api_client.post(
        "/api/users",
        json={"firstName": "Chloé", "lastName": "Roux", "email": "chloe.roux@example.org", "hiredOn": "2026-01-22"},
    )

    credited = await api_client.post(
        "/api/counters/leave/credit-monthly", json={"absenceTypeCode": "CP", "year": 2026, "month": 1}
    )

    assert credited.status_code == 200
    assert credited.json() == {
        "credited": [{"userId": api_educator["id"], "days": 2.5}, {"userId": newcomer.json()["id"], "days": 0.81}],
        "totalDays": 3.31,
    }
    counters = await _leave_counters(api_client, api_educator["id"], 2025)
    assert [(item["year"], item["earned"]) for item in counters] == [(2025, 27.5)]

    again = await api_client.post(
        "/api/counters/leave/credit-monthly",
        json={"absenceTypeCode": "CP", "year": 2026, "month": 1, "userId": api_educator["id"]},
    )
    assert again.json() == {"credited": [{"userId": api_educator["id"], "days": 0.0}], "totalDays": 0.0}

    unknown = await api_client.post(
        "/api/counters/leave/credit-monthly", json={"absenceTypeCode": "RTT", "year": 2026, "month": 1}
    )
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Absence type RTT not found"}
