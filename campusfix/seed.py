"""Seed script: departments, demo users and a couple of open issues.

Usage:
    python -m campusfix.seed
"""

import asyncio
from datetime import timedelta

from sqlalchemy import select

from campusfix.auth import create_access_token
from campusfix.database import close_db, get_session_factory, init_db
from campusfix.datetime_utils import utcnow
from campusfix.logging_config import configure_logging, get_logger
from campusfix.models import Department, Issue, IssueStatus, Support, TimelineEvent, User
from campusfix.services.priority_service import (
    calculate_deadline,
    compute_priority_score,
    default_department,
)

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------

DEPARTMENTS = [
    ("dept-1", "Academic Affairs", 88),
    ("dept-2", "Student Welfare", 92),
    ("dept-3", "Infrastructure & Facilities", 75),
    ("dept-4", "Health Services", 81),
    ("dept-5", "Disciplinary Committee", 95),
    ("dept-6", "General Administration", 85),
    ("dept-7", "Placement & Corporate Relations", 90),
    ("dept-8", "IT & Network Operations", 82),
    ("dept-9", "Physical Education & Sports", 87),
    ("dept-10", "Finance & Accounts", 84),
    ("dept-11", "Library Management", 89),
]

USERS = [
    {"name": "Campus Admin", "email": "admin@campus.edu", "role": "ADMIN", "credibility": 100},
    {"name": "Asha Rao", "email": "asha@campus.edu", "role": "STUDENT", "credibility": 80},
    {"name": "Ben Okafor", "email": "ben@campus.edu", "role": "STUDENT", "credibility": 72},
    {"name": "Chen Wei", "email": "chen@campus.edu", "role": "STUDENT", "credibility": 66},
    {"name": "Dana Levi", "email": "dana@campus.edu", "role": "STUDENT", "credibility": 50},
]

ISSUES = [
    {
        "title": "Hostel block C water supply cut every evening",
        "description": "No running water between 6pm and 10pm for the past week.",
        "category": "HOSTEL",
        "urgency": 3,
        "creator": 1,
        "supporters": [2, 3],
        "status": IssueStatus.OPEN,
    },
    {
        "title": "Library wifi drops during exam week",
        "description": "Connections on the second floor time out every few minutes.",
        "category": "DIGITAL_SERVICES",
        "urgency": 2,
        "creator": 2,
        "supporters": [],
        "status": IssueStatus.PENDING_APPROVAL,
    },
]


async def seed() -> None:
    configure_logging(level="INFO", log_format="console")
    await init_db()

    async with get_session_factory()() as db:
        existing = await db.execute(select(Department.id).limit(1))
        if existing.scalar_one_or_none() is not None:
            logger.info("seed_skipped", reason="departments already present")
            await close_db()
            return

        for dept_id, name, score in DEPARTMENTS:
            db.add(Department(id=dept_id, name=name, performance_score=score))
        await db.flush()

        users = [User(**data) for data in USERS]
        db.add_all(users)
        await db.flush()

        now = utcnow()
        for data in ISSUES:
            creator = users[data["creator"]]
            supporters = [creator] + [users[i] for i in data["supporters"]]
            created_at = now - timedelta(hours=30)
            issue = Issue(
                title=data["title"],
                description=data["description"],
                category=data["category"],
                department_id=default_department(data["category"]),
                creator_id=creator.id,
                status=data["status"].value,
                urgency=data["urgency"],
                deadline=calculate_deadline(data["category"], data["urgency"], created_at),
                priority_score=compute_priority_score(
                    [u.credibility for u in supporters], data["urgency"], created_at, now
                ),
                support_count=len(supporters),
                created_at=created_at,
                updated_at=now,
            )
            db.add(issue)
            await db.flush()

            for user in supporters:
                db.add(Support(user_id=user.id, issue_id=issue.id, created_at=created_at))
            db.add(
                TimelineEvent(
                    issue_id=issue.id,
                    event_type="CREATED",
                    user_id=creator.id,
                    user_name=creator.name,
                    description="Issue reported",
                    created_at=created_at,
                )
            )

        await db.commit()

        logger.info("seed_complete", department_count=len(DEPARTMENTS), user_count=len(users))

        print("\n" + "=" * 60)
        print("SEED DATA CREATED SUCCESSFULLY")
        print("=" * 60)
        print(f"\nDepartments: {len(DEPARTMENTS)}")
        print(f"Issues: {len(ISSUES)}")
        print("\nDev access tokens:")
        for user in users:
            print(f"  {user.email} ({user.role}, {user.credibility}): {create_access_token(str(user.id))}")
        print("=" * 60)

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
