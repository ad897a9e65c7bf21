"""Create an identity + profile row in the configured DB.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...' \
      --first-name Alice --last-name Reyes --role admin

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from dealership_platform.auth.crud import create_user
from dealership_platform.config import load_config
from dealership_platform.db import connect, init_db
from dealership_platform.errors import IdentityError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--first-name", default="")
    ap.add_argument("--last-name", default="")
    ap.add_argument("--contact-number", default="")
    ap.add_argument("--role", choices=["user", "admin"], default="user")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_user(
                conn,
                email=args.email,
                password=args.password,
                first_name=args.first_name,
                last_name=args.last_name,
                contact_number=args.contact_number,
                role=args.role,
            )
    except IdentityError as e:
        raise SystemExit(f"Could not create user: {e}")

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
