"""Seed the super-admin user from settings."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from secureshift.core.config import settings
from secureshift.core.permissions import RoleName
from secureshift.models.user import User

logger = logging.getLogger("secureshift.seeds")


def seed_super_admin(db: Session, email: Optional[str] = None) -> User:
    """Create the super-admin user if not already present."""
    email = (email or settings.SUPER_ADMIN_EMAIL).strip().lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        logger.info("Super admin '%s' already exists, skipping", email)
        return existing

    admin = User(
        email=email,
        full_name="Super Admin",
        role=RoleName.super_admin.value,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Created super admin %s (id=%s)", email, admin.id)
    return admin
