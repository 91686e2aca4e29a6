"""Create or reset the admin login.

Usage:
    python -m scripts.seed_admin [--mode bootstrap|upsert] [--username NAME] [--password PASS]
"""

import argparse

from app.config import settings
from app.logging import setup_logging
from app.services.bootstrap import seed_admin


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the admin user")
    parser.add_argument("--mode", choices=["bootstrap", "upsert"], default="upsert")
    parser.add_argument("--username", default=None, help="Defaults to ADMIN_USER")
    parser.add_argument("--password", default=None, help="Defaults to ADMIN_PASS")
    args = parser.parse_args()

    setup_logging(settings.log_level, settings.log_format)
    user_id = seed_admin(args.mode, args.username, args.password)
    if user_id:
        print(f"Admin ready: {args.username or settings.admin_user} ({user_id})")
    else:
        print("Users already exist, nothing to do")


if __name__ == "__main__":
    main()
