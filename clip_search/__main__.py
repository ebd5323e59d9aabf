"""Entry point: provision data files, load the engine and serve HTTP."""

import sys
import logging

import uvicorn

from . import config
from .engine import SearchEngine
from .exceptions import ConfigurationError
from .provisioning import provision_files
from .server import create_app

logger = logging.getLogger("clip_search")


def main() -> int:
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    try:
        provision_files(config.DATA_DIR)
        logger.info("Loading model...")
        engine = SearchEngine.from_data_dir(config.DATA_DIR)
    except ConfigurationError as e:
        logger.error(f"Startup failed: {e.message}")
        return 1

    logger.info(f"Ready: {engine.catalog_size()} products, port {config.PORT}")
    uvicorn.run(create_app(engine), host="0.0.0.0", port=config.PORT)
    return 0


if __name__ == "__main__":
    sys.exit(main())
