from datetime import date
from decimal import Decimal

import pytest

from academy.core.exceptions import Conflict, NotFound, ValidationError
from academy.schemas.coach import CoachCreate, CoachUpdate
from academy.schemas.student import StudentCreate
from academy.services import coach_registry


async def test_codes_are_sequential_and_rate_defaults(db):
    first = await coach_registry.create_coach(db, CoachCreate(name="Ravi", email="ravi@academy.in"))
    second = await coach_registry.create_coach(
        db, CoachCreate(name="Meera", email="meera@academy.in", hourly_rate=Decimal("1800"))
    )

    assert (first.code, second.code) == ("COA0001", "COA0002")
    assert first.hourly_rate == Decimal("1500")
    assert second.hourly_rate == Decimal("1800")
    assert first.outstanding_salary == 0


async def test_email_must_be_unique(db):
    await coach_registry.create_coach(db, CoachCreate(name="Ravi", email="ravi@academy.in"))

    with pytest.raises(Conflict):
        await coach_registry.create_coach(db, CoachCreate(name="Other", email="ravi@academy.in"))


async def test_update_keeps_unset_fields(db, make_coach):
    coach = await make_coach(hourly_rate="1500")

    updated = await coach_registry.update_coach(db, coach.id, CoachUpdate(name="Renamed"))

    assert updated.name == "Renamed"
    assert updated.hourly_rate == Decimal("1500")


class TestHourlyRate:
    async def test_set(self, db, make_coach):
        coach = await make_coach()

        updated = await coach_registry.set_hourly_rate(db, coach.id, Decimal("2100.50"))

        assert updated.hourly_rate == Decimal("2100.50")

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-10")])
    async def test_must_be_positive(self, db, make_coach, rate):
        coach = await make_coach()
        with pytest.raises(ValidationError):
            await coach_registry.set_hourly_rate(db, coach.id, rate)

    async def test_unknown_coach(self, db):
        with pytest.raises(NotFound):
            await coach_registry.set_hourly_rate(db, 404, Decimal("100"))


async def test_get_outstanding(db, make_coach):
    coach = await make_coach(outstanding="1234.5")

    assert await coach_registry.get_outstanding(db, coach.id) == Decimal("1234.5")


class TestDeleteCoach:
    async def test_clean_coach_is_deleted(self, db, make_coach):
        coach = await make_coach()

        await coach_registry.delete_coach(db, coach.id)

        with pytest.raises(NotFound):
            await coach_registry.get_coach(db, coach.id)

    async def test_refused_with_students(self, db, make_coach, make_student):
        coach = await make_coach()
        await make_student(coach)

        with pytest.raises(ValidationError):
            await coach_registry.delete_coach(db, coach.id)

    async def test_refused_with_outstanding_salary(self, db, make_coach):
        coach = await make_coach(outstanding="10")

        with pytest.raises(ValidationError):
            await coach_registry.delete_coach(db, coach.id)

    async def test_refused_with_attendance_history(self, db, make_coach, make_student, make_attendance):
        coach = await make_coach()
        student = await make_student(coach)
        await make_attendance(student, date(2024, 1, 2))
        await coach_registry.assign_student(db, student.id, None)

        with pytest.raises(ValidationError):
            await coach_registry.delete_coach(db, coach.id)


class TestStudents:
    async def test_count(self, db, make_coach, make_student):
        assert await coach_registry.count_students(db) == 0

        await make_student(await make_coach())
        await make_student()

        assert await coach_registry.count_students(db) == 2

    async def test_create_with_coach(self, db, make_coach):
        coach = await make_coach()

        student = await coach_registry.create_student(
            db, StudentCreate(name="Aarav", email="aarav@academy.in", coach_id=coach.id)
        )

        assert student.code.startswith("STU")
        assert student.coach_id == coach.id

    async def test_create_with_unknown_coach(self, db):
        with pytest.raises(NotFound):
            await coach_registry.create_student(db, StudentCreate(name="A", email="a@academy.in", coach_id=55))

    async def test_reassign_and_filter(self, db, make_coach, make_student):
        first = await make_coach()
        second = await make_coach()
        student = await make_student(first)

        await coach_registry.assign_student(db, student.id, second.id)

        assert [s.id for s in await coach_registry.list_students(db, coach_id=second.id)] == [student.id]
        assert await coach_registry.list_students(db, coach_id=first.id) == []
