#!/usr/bin/env python3
"""
Grant or revoke the admin role for a user.

Usage:
    # Promote a donor to admin
    python set_admin_role.py --email admin@example.com

    # Demote back to donor
    python set_admin_role.py --email admin@example.com --revoke
"""

import argparse
import sys
import os

# Add parent directory to path to import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from orphancare.db.session import SessionLocal
from orphancare.models.user import User, ROLE_ADMIN, ROLE_DONOR


def set_role(email: str, role: str) -> bool:
    """Set a user's role by email"""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            print(f"❌ User not found: {email}")
            return False

        if user.role == role:
            print(f"User '{email}' already has role '{role}'")
            return True

        user.role = role
        db.commit()

        print(f"✓ Role '{role}' set for user: {email} (ID: {user.id})")
        return True

    except Exception as e:
        print(f"❌ Failed to update role: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Grant or revoke admin access")
    parser.add_argument("--email", required=True, help="User email address")
    parser.add_argument("--revoke", action="store_true", help="Demote the user back to donor")
    args = parser.parse_args()

    ok = set_role(args.email, ROLE_DONOR if args.revoke else ROLE_ADMIN)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
