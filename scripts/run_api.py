import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from postithere.config import load_config


def main() -> None:
    cfg = load_config()
    uvicorn.run(
        "postithere.api.server:create_app",
        factory=True,
        host=cfg.API_HOST,
        port=cfg.API_PORT,
        reload=False,
    )


if __name__ == "__main__":
    main()
