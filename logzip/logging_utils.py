# logzip/logging_utils.py
import logging
import os
from typing import Optional

from rich.logging import RichHandler

# LOGZIP_LOG=DEBUG|INFO|WARNING (default INFO); DEBUG also shows temp file paths.
# LOGZIP_ACCESS_LOG=1 keeps per-request lines from the HTTP layer.
LOG_LEVEL = getattr(logging, os.environ.get("LOGZIP_LOG", "INFO").upper(), logging.INFO)
ACCESS_LOGGERS = ("werkzeug", "hypercorn.access")
NAMESPACE = "logzip"
KEY_WIDTH = 10


def console_handler(level: int = LOG_LEVEL) -> logging.Handler:
    handler = RichHandler(
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
        log_time_format="[%X]",
    )
    handler.setLevel(level)
    # Rich renders time and level itself.
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def init_logging(level: Optional[int] = None, access_log: Optional[bool] = None) -> None:
    """Attach the Rich console handler to the root logger, once per process."""
    if getattr(init_logging, "_inited", False):
        return
    level = LOG_LEVEL if level is None else level
    if access_log is None:
        access_log = bool(os.environ.get("LOGZIP_ACCESS_LOG"))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(console_handler(level))

    if not access_log:
        for name in ACCESS_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    init_logging._inited = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Logger under the `logzip.` namespace at the configured level."""
    if name != NAMESPACE and not name.startswith(NAMESPACE + "."):
        name = f"{NAMESPACE}.{name}"
    log = logging.getLogger(name)
    log.setLevel(LOG_LEVEL)
    return log


def block(title: str, **fields) -> str:
    """
    Multi-line event for the console, e.g.

        ┏ ZIPPING
        ┃ name      : archive/old.log
        ┗

    Keys are padded to the longest key (at least KEY_WIDTH); None shows as "-".
    """
    if not fields:
        return f"┏ {title}\n┗"
    width = max(KEY_WIDTH, *(len(k) for k in fields))
    lines = [f"┃ {k:<{width}}: {'-' if v is None else v}" for k, v in fields.items()]
    return "\n".join([f"┏ {title}", *lines, "┗"])
