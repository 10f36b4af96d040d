"""Create indexes and seed the registration flag.

Usage:
  python scripts/init_db.py [--open-registration]

The flag is only written when it does not exist yet, unless
--open-registration is given.
"""

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from postithere.config import load_config
from postithere.db import CONFIG_COLLECTION, connect, find_document, init_db
from postithere.flags import ConfigStore


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--open-registration", action="store_true")
    args = ap.parse_args()

    cfg = load_config()
    with connect(cfg) as db:
        init_db(db)
        store = ConfigStore(db)
        key = cfg.REGISTRATION_FLAG_KEY
        if args.open_registration:
            store.set_bool(key, True)
        elif find_document(db, CONFIG_COLLECTION, {"key": key}) is None:
            store.set_bool(key, False)

        print(f"DB initialized: {cfg.MONGO_URI}/{cfg.MONGO_DB} ({key}={store.get_bool(key)})")


if __name__ == "__main__":
    main()
