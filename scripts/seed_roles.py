#!/usr/bin/env python3
"""Seed workspace roles and their permissions.

Safe to run repeatedly: missing roles are created and existing roles get
their permission lists refreshed in place.

Usage:
    python scripts/seed_roles.py
"""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.auth.permissions import ROLE_PERMISSIONS
from teamsync.db.engine import get_session, init_db
from teamsync.db.seed import seed_roles


def main():
    init_db()
    with get_session() as session:
        roles = seed_roles(session, ROLE_PERMISSIONS)
        for role in roles:
            print(f"{role.name.value}: {', '.join(role.permissions)}")
    print("Seeding completed successfully.")


if __name__ == "__main__":
    main()
