from __future__ import annotations

import logging

from smeta_admin.logging_utils import configure_logging


def test_configure_logging_is_idempotent():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging("DEBUG")
        configure_logging("WARNING")

        ours = [h for h in root.handlers if h.get_name() == "smeta_admin"]
        assert len(ours) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        root.setLevel(level)
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
