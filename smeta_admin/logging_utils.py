from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "smeta_admin"


def configure_logging(level: str | int = "INFO") -> None:
    """Attach one stream handler to the root logger; safe to call repeatedly."""
    root = logging.getLogger()
    root.setLevel(level)

    if not any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
