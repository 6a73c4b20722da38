# app/core/logging.py
import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole service.

    Calling it again only adjusts the level, so the app factory can be
    invoked repeatedly (tests) without stacking handlers.
    """
    root = logging.getLogger()
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)

    root.setLevel(resolved)
    # SQL echo is controlled by the engine, keep the library logger quiet.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
