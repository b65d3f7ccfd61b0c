# src/limefarm/api/__main__.py
from __future__ import annotations

import uvicorn

from limefarm.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so LIMEFARM_* vars exist before anything reads them.
    load_dotenv_if_present()

    from limefarm.api.app import create_app
    from limefarm.runtime.config import load_farm_config
    from limefarm.runtime.farm_logging import configure_structured_logging

    cfg = load_farm_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(), host=cfg.api_host, port=cfg.api_port, log_level="info")


if __name__ == "__main__":
    main()
