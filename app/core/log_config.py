import logging

from app.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level or settings.LOG_LEVEL)
        return
    logging.basicConfig(level=level or settings.LOG_LEVEL, format=LOG_FORMAT)
