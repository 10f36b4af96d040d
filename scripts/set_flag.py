"""Set a boolean flag in the `config` collection.

Usage:
  python scripts/set_flag.py allowRegistration on
  python scripts/set_flag.py allowRegistration off

Running services pick the new value up on the next request.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from postithere.config import load_config
from postithere.db import connect
from postithere.flags import ConfigStore

_TRUTHY = ("1", "true", "yes", "y", "on")
_FALSY = ("0", "false", "no", "n", "off")


def main() -> None:
    if len(sys.argv) != 3:
        print("Usage: python scripts/set_flag.py <key> <on|off>")
        sys.exit(2)

    key = sys.argv[1].strip()
    raw = sys.argv[2].strip().lower()
    if raw not in _TRUTHY + _FALSY:
        print(f"Unrecognized value: {sys.argv[2]}")
        sys.exit(2)

    cfg = load_config()
    with connect(cfg) as db:
        ConfigStore(db).set_bool(key, raw in _TRUTHY)


if __name__ == "__main__":
    main()
