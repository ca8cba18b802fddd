"""Seed the default role table into the database."""

import logging

from sqlalchemy.orm import Session

from secureshift.services.role_service import role_service

logger = logging.getLogger("secureshift.seeds")


def seed_roles(db: Session) -> int:
    """Write the built-in roles as system roles. Safe to re-run."""
    count = role_service.seed_defaults(db)
    logger.info("Seeded %d system roles", count)
    return count
