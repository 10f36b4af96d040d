"""Create a user directly in MongoDB, bypassing the registration flag.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...'

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from postithere.auth import PasswordHasher, UserDirectory
from postithere.config import load_config
from postithere.db import connect, init_db
from postithere.exceptions import DuplicateEmailError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    cfg = load_config()
    with connect(cfg) as db:
        init_db(db)
        users = UserDirectory(db, PasswordHasher(rounds=cfg.AUTH_HASH_ROUNDS))
        try:
            u = users.register(args.email, args.password)
        except DuplicateEmailError:
            print(f"A user with email {args.email} already exists")
            sys.exit(1)

    print("Created user:")
    print(u.public())


if __name__ == "__main__":
    main()
