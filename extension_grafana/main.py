"""
Grafana Extension - Main Entry Point

Loads the configuration, sets up logging and serves the extension API.
"""

import logging
import sys

import uvicorn

from extension_grafana.api.app import create_app
from extension_grafana.config.settings import get_config
from extension_grafana.utils.logging_context import setup_logging


def run() -> None:
    config = get_config()
    setup_logging(config.api.log_level)
    logger = logging.getLogger(__name__)

    try:
        app = create_app(config)
        logger.info(f"Extension listening on {config.api.host}:{config.api.port}")
        uvicorn.run(
            app,
            host=config.api.host,
            port=config.api.port,
            log_level=config.api.log_level.lower(),
            access_log=False,
        )
    except Exception as e:
        logger.error(f"FATAL: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
