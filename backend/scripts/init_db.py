#!/usr/bin/env python3
"""
Create the BudStack schema and seed the rows the platform needs to boot

- All tables from budstack.models
- The default storefront template
- The platform settings singleton
- Optionally a super admin account

Author: TM3
Date: 2025-11-05

Usage:
    export DATABASE_URL="postgresql://..."
    python3 backend/scripts/init_db.py --super-admin-email admin@budstack.to
"""
import argparse
import getpass
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

from budstack.core.auth import ROLE_SUPER_ADMIN, hash_password
from budstack.core.config import settings
from budstack.core.database import Base, engine
from budstack.repositories.platform_repository import PlatformSettingsRepository
from budstack.repositories.template_repository import TemplateRepository
from budstack.repositories.user_repository import UserRepository
from budstack.services.onboarding_service import DEFAULT_TEMPLATE, MIN_PASSWORD_LENGTH

import budstack.models  # noqa: F401  registers tables on Base.metadata

logger = logging.getLogger("init_db")


def create_schema():
    Base.metadata.create_all(bind=engine)
    logger.info(f"Schema ready ({len(Base.metadata.tables)} tables)")


def seed_default_template():
    repository = TemplateRepository()
    if repository.find_by_slug(settings.DEFAULT_TEMPLATE_SLUG):
        logger.info(f"Template '{settings.DEFAULT_TEMPLATE_SLUG}' already exists")
        return
    repository.create({**DEFAULT_TEMPLATE, 'slug': settings.DEFAULT_TEMPLATE_SLUG})
    logger.info(f"Created template '{settings.DEFAULT_TEMPLATE_SLUG}'")


def seed_platform_settings():
    # upsert with no fields stores the defaults without overwriting existing values
    PlatformSettingsRepository().upsert({})
    logger.info("Platform settings ready")


def seed_super_admin(email: str, password: str):
    repository = UserRepository()
    if repository.email_exists(email):
        logger.info(f"User {email} already exists, skipping")
        return
    repository.create(
        email=email,
        password_hash=hash_password(password),
        role=ROLE_SUPER_ADMIN,
        tenant_id=None,
        name="Platform Admin",
    )
    logger.info(f"Created super admin {email}")


def main():
    parser = argparse.ArgumentParser(description="Initialize the BudStack database")
    parser.add_argument("--super-admin-email", help="Create a super admin with this e-mail")
    parser.add_argument("--skip-schema", action="store_true", help="Only seed data")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if not args.skip_schema:
        create_schema()
    seed_default_template()
    seed_platform_settings()

    if args.super_admin_email:
        password = getpass.getpass("Super admin password: ")
        if len(password) < MIN_PASSWORD_LENGTH:
            logger.error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
            sys.exit(1)
        seed_super_admin(args.super_admin_email, password)


if __name__ == "__main__":
    main()
