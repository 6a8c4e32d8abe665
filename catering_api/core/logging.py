"""
Logging setup
"""
import logging
from catering_api.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = None):
    """Configure the root logger once for the whole service"""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # Keep SQL noise out unless explicitly requested
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
