import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from slack_bridge.config import Config

_HANDLER_TAG = "_slack_bridge_handler"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(logging.WARNING)

    # drop handlers left by an earlier call
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(Config.LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    setattr(stream_handler, _HANDLER_TAG, True)
    root.addHandler(stream_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    logging.getLogger("slack_bridge").setLevel(
        getattr(logging, level.upper(), logging.INFO)
    )
    return root
