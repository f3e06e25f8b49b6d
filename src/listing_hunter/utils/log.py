from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Route application logs to stderr.

    Keeps third-party loggers (scrapy, urllib3) at WARNING so a normal run only
    shows the hunt's own progress.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("listing_hunter").setLevel(level)
    for noisy in ("scrapy", "urllib3", "parsel"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
