import logging

from app.core.config import settings


def setup_logging(level: str | None = None):
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # httpx logs every request at INFO, too chatty next to ours
    logging.getLogger("httpx").setLevel(logging.WARNING)
