import logging
import sys

def setup_logging():
    """
    Configure logging for the application.

    Logs go to stdout with timestamps, levels and logger names so that
    container platforms can collect them without extra configuration.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Reduce SQLAlchemy noise in logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("qrmenu")


# Create global logger instance
logger = setup_logging()
