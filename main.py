"""Application entry point."""

from __future__ import annotations

import os

from config import load_config
from core import setup_logger, ApplicationInitializer

config = load_config()

# Setup logging
logger = setup_logger(
    name="",
    level=config.log_level,
    log_file=os.path.join(config.log_folder, "app.log"),
    colored=True
)


def main() -> None:
    """Main application entry point."""
    app = ApplicationInitializer(config)
    app.initialize()
    app.run()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
