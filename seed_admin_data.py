#!/usr/bin/env python3
"""
Admin Seed Script

Creates the first platform administrator for Hallbook. Admin accounts cannot be
registered through the public API, so run this once after the database is up.

Credentials are read from the environment:
    ADMIN_NAME, ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_PHONE

Usage:
    python seed_admin_data.py
"""

import os
import sys
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from hallbook.auth.schemas import UserCreate
from hallbook.auth.service import UserService
from hallbook.database import Base, SessionLocal, engine
from hallbook.models import User

def create_admin(db: Session, name: str, email: str, password: str,
                 phone: Optional[str] = None) -> Tuple[User, bool]:
    """Create a verified admin account; returns the existing account untouched if the email is taken"""

    existing = UserService.get_user_by_email(db, email)
    if existing:
        return existing, False

    admin = UserService.create_user(
        db,
        UserCreate(name=name, email=email, password=password, phone=phone),
        role="admin",
    )
    admin.is_verified = True
    db.commit()
    db.refresh(admin)
    return admin, True

def main() -> int:
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")

    if not email or not password:
        print("⚠️  ADMIN_EMAIL and ADMIN_PASSWORD must be set, for example:")
        print("    export ADMIN_NAME=Your Name")
        print("    export ADMIN_EMAIL=your.email@example.com")
        print("    export ADMIN_PASSWORD=YourSecurePassword123!")
        print("    export ADMIN_PHONE=1234567890")
        return 1

    Base.metadata.create_all(bind=engine, checkfirst=True)

    db = SessionLocal()
    try:
        admin, created = create_admin(
            db,
            name=os.getenv("ADMIN_NAME", "Admin User"),
            email=email,
            password=password,
            phone=os.getenv("ADMIN_PHONE"),
        )
    except Exception as e:
        print(f"❌ Error creating admin: {e}")
        db.rollback()
        raise
    finally:
        db.close()

    if not created:
        print(f"✅ An account with email {admin.email} already exists (role: {admin.role}), skipping...")
        return 0

    print("🎉 Admin account created")
    print(f"  - Name:  {admin.name}")
    print(f"  - Email: {admin.email}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
