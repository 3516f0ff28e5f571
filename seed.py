import asyncio
from decimal import Decimal
from sqlalchemy import select
from academy.core.db import AsyncSessionLocal, engine, Base
from academy.core.security import hash_password
from academy.models import User, Coach, Student
from academy.models.enums import UserType

ADMIN_EMAIL = "admin@academy.local"
DEMO_COACH_EMAIL = "coach@academy.local"

DEMO_STUDENTS = [
    ("Aarav Sharma", "aarav@academy.local"),
    ("Diya Patel", "diya@academy.local"),
    ("Kabir Singh", "kabir@academy.local"),
]


async def seed_database():
    print("🌱 Starting database seed...")

    print("📝 Creating tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("\n🔐 Creating admin user...")
        result = await db.execute(select(User).where(User.email == ADMIN_EMAIL))
        existing_admin = result.scalar_one_or_none()

        if not existing_admin:
            admin = User(
                email=ADMIN_EMAIL,
                full_name="Academy Admin",
                hashed_password=hash_password("admin123"),
                user_type=UserType.ADMIN,
                is_admin=True,
            )
            db.add(admin)
            await db.commit()
            print("  ✅ Created admin user")
            print(f"  📧 Email: {ADMIN_EMAIL}")
            print("  🔑 Password: admin123")
            print("  ⚠️  PLEASE CHANGE THE PASSWORD IMMEDIATELY!")
        else:
            print("  ⏭️  Admin already exists")

        print("\n👟 Creating demo coach...")
        result = await db.execute(select(Coach).where(Coach.email == DEMO_COACH_EMAIL))
        coach = result.scalar_one_or_none()

        if not coach:
            coach_user = User(
                email=DEMO_COACH_EMAIL,
                full_name="Demo Coach",
                hashed_password=hash_password("coach123"),
                user_type=UserType.COACH,
            )
            db.add(coach_user)
            await db.flush()

            coach = Coach(
                code="COA0001",
                name="Demo Coach",
                email=DEMO_COACH_EMAIL,
                hourly_rate=Decimal("1500"),
                user_id=coach_user.id,
            )
            db.add(coach)
            await db.flush()
            print(f"  ✅ Created coach {coach.code} at {coach.hourly_rate}/hour")
        else:
            print(f"  ⏭️  Coach exists: {coach.code}")

        print("\n🎓 Creating demo students...")
        for index, (name, email) in enumerate(DEMO_STUDENTS, start=1):
            result = await db.execute(select(Student).where(Student.email == email))
            if result.scalar_one_or_none():
                print(f"  ⏭️  Student exists: {email}")
                continue

            db.add(Student(code=f"STU{index:04d}", name=name, email=email, coach_id=coach.id))
            print(f"  ✅ Created student: {name}")

        await db.commit()

    print("\n✨ Database seeding completed!\n")


if __name__ == "__main__":
    asyncio.run(seed_database())
