import logging
import os


def configure_logging() -> None:
    """Configure logging defaults for the application."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # passlib probes the bcrypt backend version and logs a traceback when it can't read it
    logging.getLogger("passlib.handlers.bcrypt").setLevel(logging.ERROR)
