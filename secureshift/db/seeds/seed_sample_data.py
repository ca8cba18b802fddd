"""Seed a demo branch with an employer, guards and a few open shifts."""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from secureshift.core.permissions import RoleName
from secureshift.models.branch import Branch
from secureshift.models.shift import Shift
from secureshift.models.user import User
from secureshift.services.shift_service import lifecycle

logger = logging.getLogger("secureshift.seeds")

SAMPLE_BRANCH = {"name": "Melbourne CBD", "code": "MEL-CBD", "city": "Melbourne", "state": "VIC"}

SAMPLE_USERS = [
    ("branch.admin@secureshift.local", "Bianca Admin", RoleName.branch_admin),
    ("employer@secureshift.local", "Eastside Events", RoleName.employer),
    ("guard.one@secureshift.local", "Gary Guard", RoleName.guard),
    ("guard.two@secureshift.local", "Grace Guard", RoleName.guard),
]

SAMPLE_SHIFTS = [
    ("Night patrol - warehouse", 1, "22:00", "06:00"),
    ("Concert crowd control", 3, "17:00", "23:30"),
    ("Retail loss prevention", 7, "09:00", "17:00"),
]


def seed_sample_data(db: Session) -> None:
    """Insert demo records that are not already present."""
    branch = db.query(Branch).filter(Branch.code == SAMPLE_BRANCH["code"]).first()
    if not branch:
        branch = Branch(**SAMPLE_BRANCH)
        db.add(branch)
        db.flush()

    users = {}
    for email, name, role in SAMPLE_USERS:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, full_name=name, role=role.value, branch_id=branch.id)
            db.add(user)
            db.flush()
        users[role] = user

    employer = users[RoleName.employer]
    if not db.query(Shift).filter(Shift.created_by == employer.id).first():
        today = lifecycle.today()
        for title, days_ahead, start, end in SAMPLE_SHIFTS:
            db.add(lifecycle.new_shift(
                employer.id, title, today + timedelta(days=days_ahead), start, end,
                location=branch.city,
            ))

    db.commit()
    logger.info("Seeded sample branch %s with %d users", branch.code, len(users))
