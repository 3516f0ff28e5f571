from datetime import date

import pytest_asyncio

from academy.core.timeutils import local_today
from academy.models.enums import UserType


@pytest_asyncio.fixture
async def coach_account(make_user, make_coach, make_student):
    user = await make_user(user_type=UserType.COACH)
    coach = await make_coach(hourly_rate="1500", user=user)
    student = await make_student(coach)
    return user, coach, student


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["scheduler"] == "stopped"
    assert body["next_accrual"] is None


async def test_requires_token(client):
    response = await client.get("/salary/total-pending")
    assert response.status_code in (401, 403)


async def test_rejects_bad_token(client):
    response = await client.get("/salary/total-pending", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


class TestAttendanceEndpoints:
    async def test_mark_then_duplicate(self, client, coach_account, headers_for):
        user, coach, student = coach_account
        payload = {"student_id": student.id, "coach_id": coach.id, "status": "present", "date": "2024-03-05"}

        created = await client.post("/attendance/mark", json=payload, headers=headers_for(user))
        duplicate = await client.post(
            "/attendance/mark", json={**payload, "session_duration": 120}, headers=headers_for(user)
        )

        assert created.status_code == 201
        data = created.json()["data"]
        assert data["session_duration"] == 60
        assert data["duration_hours"] == 1.0

        assert duplicate.status_code == 409
        detail = duplicate.json()["detail"]
        assert detail["existing_attendance"]["id"] == data["id"]
        assert detail["existing_attendance"]["session_duration"] == 60

    async def test_coach_cannot_mark_for_another_coach(
        self, client, coach_account, make_coach, make_student, headers_for
    ):
        user, _, _ = coach_account
        other = await make_coach()
        student = await make_student(other)

        response = await client.post(
            "/attendance/mark",
            json={"student_id": student.id, "coach_id": other.id, "status": "present", "date": "2024-03-05"},
            headers=headers_for(user),
        )

        assert response.status_code == 403

    async def test_not_your_student(self, client, coach_account, make_student, headers_for):
        user, coach, _ = coach_account
        stranger = await make_student()

        response = await client.post(
            "/attendance/mark",
            json={"student_id": stranger.id, "coach_id": coach.id, "status": "absent", "date": "2024-03-05"},
            headers=headers_for(user),
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Student not assigned to you"

    async def test_student_history_range(self, client, coach_account, make_attendance, headers_for):
        user, _, student = coach_account
        await make_attendance(student, date(2024, 3, 1))
        await make_attendance(student, date(2024, 4, 1))

        response = await client.get(
            f"/attendance/student/{student.id}",
            params={"startDate": "2024-03-01", "endDate": "2024-03-31"},
            headers=headers_for(user),
        )

        assert response.status_code == 200
        assert [r["date"] for r in response.json()["data"]] == ["2024-03-01"]

    async def test_salary_report_is_camel_case(
        self, client, coach_account, make_attendance, admin, headers_for
    ):
        user, coach, student = coach_account
        paid = await make_attendance(student, date(2024, 1, 5))
        await client.post("/salary/coaches/%d/recalculate" % coach.id, headers=headers_for(admin))
        await client.post("/salary/pay", json={"coach_id": coach.id}, headers=headers_for(admin))
        unpaid = await make_attendance(student, date(2024, 1, 6), minutes=30)

        response = await client.get(
            f"/attendance/salary/{coach.id}", params={"month": 1, "year": 2024}, headers=headers_for(user)
        )

        assert response.status_code == 200
        report = response.json()["data"]
        assert report["coachId"] == coach.id
        assert report["totalSessions"] == 1
        assert report["totalHours"] == 0.5
        assert report["calculatedSalary"] == 750.0
        assert report["outstandingSalary"] == 0.0
        assert [(s["id"], s["isPaid"]) for s in report["sessions"]] == [(paid.id, True), (unpaid.id, False)]

    async def test_salary_report_rejects_bad_month(self, client, coach_account, headers_for):
        user, coach, _ = coach_account

        response = await client.get(
            f"/attendance/salary/{coach.id}", params={"month": 13, "year": 2024}, headers=headers_for(user)
        )

        assert response.status_code == 422


class TestSalaryEndpoints:
    async def test_pay_then_nothing_to_pay(self, client, coach_account, make_attendance, admin, headers_for):
        _, coach, student = coach_account
        first = await make_attendance(student, date(2024, 1, 5))
        second = await make_attendance(student, date(2024, 1, 6))
        await client.post(f"/salary/coaches/{coach.id}/recalculate", headers=headers_for(admin))

        paid = await client.post("/salary/pay", json={"coach_id": coach.id}, headers=headers_for(admin))
        again = await client.post("/salary/pay", json={"coach_id": coach.id}, headers=headers_for(admin))

        assert paid.status_code == 200
        settlement = paid.json()["data"]
        assert settlement["amount"] == 3000.0
        assert settlement["status"] == "paid"
        assert settlement["paid_session_ids"] == [first.id, second.id]

        assert again.status_code == 400
        assert again.json()["detail"] == "No outstanding salary to pay"

    async def test_pay_with_balance_but_no_sessions_returns_null(
        self, client, make_coach, admin, headers_for
    ):
        coach = await make_coach(outstanding="100")

        response = await client.post("/salary/pay", json={"coach_id": coach.id}, headers=headers_for(admin))

        assert response.status_code == 200
        assert response.json()["data"] is None

    async def test_pay_unknown_coach(self, client, admin, headers_for):
        response = await client.post("/salary/pay", json={"coach_id": 4040}, headers=headers_for(admin))
        assert response.status_code == 404

    async def test_coach_cannot_pay(self, client, coach_account, headers_for):
        user, coach, _ = coach_account

        response = await client.post("/salary/pay", json={"coach_id": coach.id}, headers=headers_for(user))

        assert response.status_code == 403

    async def test_accrue_pay_all_and_totals(self, client, coach_account, make_attendance, admin, headers_for):
        _, coach, student = coach_account
        await make_attendance(student, date(2024, 1, 5), minutes=90)

        accrued = await client.post("/salary/accrue", json={"year": 2024, "month": 1}, headers=headers_for(admin))
        pending = await client.get("/salary/total-pending", headers=headers_for(admin))
        paid_all = await client.post("/salary/pay-all", headers=headers_for(admin))
        settlements = await client.get(
            "/salary/settlements", params={"coach_id": coach.id}, headers=headers_for(admin)
        )

        assert accrued.json()["data"]["settlements"][0]["amount"] == 2250.0
        assert pending.json()["data"] == {"total": 2250.0, "currency": "INR"}

        batch = paid_all.json()["data"]
        assert [s["coach_id"] for s in batch["settlements"]] == [coach.id]
        assert batch["failures"] == []

        statuses = sorted(s["status"] for s in settlements.json()["data"])
        assert statuses == ["paid", "pending"]
        assert settlements.json()["meta"]["total"] == 2

        first_page = await client.get(
            "/salary/settlements", params={"coach_id": coach.id, "page_size": 1}, headers=headers_for(admin)
        )
        assert len(first_page.json()["data"]) == 1
        assert first_page.json()["meta"]["total_pages"] == 2


class TestCoachEndpoints:
    async def test_me(self, client, coach_account, headers_for):
        user, coach, _ = coach_account

        response = await client.get("/coaches/me", headers=headers_for(user))

        assert response.status_code == 200
        assert response.json()["data"]["id"] == coach.id

    async def test_hourly_rate_and_outstanding(self, client, coach_account, admin, headers_for):
        _, coach, _ = coach_account

        updated = await client.put(
            f"/coaches/{coach.id}/hourly-rate", json={"hourly_rate": "2000"}, headers=headers_for(admin)
        )
        rejected = await client.put(
            f"/coaches/{coach.id}/hourly-rate", json={"hourly_rate": "-5"}, headers=headers_for(admin)
        )
        outstanding = await client.get(f"/coaches/{coach.id}/outstanding", headers=headers_for(admin))

        assert updated.json()["data"]["hourly_rate"] == 2000.0
        assert rejected.status_code == 422
        assert outstanding.json()["data"] == {"coach_id": coach.id, "outstanding_salary": 0.0}

    async def test_create_and_count(self, client, admin, headers_for):
        created = await client.post(
            "/coaches", json={"name": "Meera", "email": "meera@academy.in"}, headers=headers_for(admin)
        )
        duplicate = await client.post(
            "/coaches", json={"name": "Meera 2", "email": "meera@academy.in"}, headers=headers_for(admin)
        )
        count = await client.get("/coaches/count", headers=headers_for(admin))

        assert created.status_code == 201
        assert created.json()["data"]["hourly_rate"] == 1500.0
        assert duplicate.status_code == 409
        assert count.json()["data"]["count"] == 1


class TestStudentEndpoints:
    async def test_own_attendance_this_month(
        self, client, coach_account, make_user, make_student, make_attendance, headers_for
    ):
        _, coach, _ = coach_account
        user = await make_user(user_type=UserType.STUDENT)
        student = await make_student(coach, user=user)
        today = local_today()
        await make_attendance(student, today, minutes=45)

        response = await client.get("/students/attendance", headers=headers_for(user))

        assert response.status_code == 200
        data = response.json()["data"]
        assert [r["student_id"] for r in data["attendance"]] == [student.id]
        stats = data["stats"]
        assert stats["present"] == 1
        assert stats["total_duration"] == 45
        assert stats["start_date"] == today.replace(day=1).isoformat()
        assert stats["end_date"] == today.isoformat()

    async def test_own_attendance_week_filter(self, client, make_user, make_student, headers_for):
        user = await make_user(user_type=UserType.STUDENT)
        await make_student(user=user)

        response = await client.get("/students/attendance", params={"filter": "week"}, headers=headers_for(user))
        rejected = await client.get("/students/attendance", params={"filter": "year"}, headers=headers_for(user))

        assert response.json()["data"]["stats"]["total_days"] == 7
        assert rejected.status_code == 422

    async def test_own_attendance_without_profile(self, client, coach_account, headers_for):
        user, _, _ = coach_account

        response = await client.get("/students/attendance", headers=headers_for(user))

        assert response.status_code == 404

    async def test_count_is_admin_only(self, client, coach_account, admin, headers_for):
        user, _, _ = coach_account

        count = await client.get("/students/count", headers=headers_for(admin))
        forbidden = await client.get("/students/count", headers=headers_for(user))

        assert count.json()["data"]["count"] == 1
        assert forbidden.status_code == 403
