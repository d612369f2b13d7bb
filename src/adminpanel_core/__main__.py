from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn

from adminpanel_core.app import create_app
from adminpanel_core.config import CoreConfig, load_core_config


def configure_logging(config: CoreConfig) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.logging.file:
        log_file = Path(config.logging.file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=config.logging.max_size_mb * 1024 * 1024,
                backupCount=config.logging.backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=config.logging.level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def main() -> None:
    config = load_core_config()
    configure_logging(config)

    uvicorn.run(
        create_app(config=config),
        host=config.network.bind_host,
        port=config.network.port,
    )


if __name__ == "__main__":
    main()
