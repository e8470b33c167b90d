from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from .lib.command import redact
from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


class SecretFilter(logging.Filter):
    """Mask secrets (the license key) in every record that passes a handler."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def add(self, secret: str) -> None:
        if secret and secret not in self.secrets:
            self.secrets.append(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            record.msg = redact(record.getMessage(), self.secrets)
            record.args = None
        return True


def _secret_filter(root: logging.Logger) -> Optional[SecretFilter]:
    return getattr(root, "_nr_php_secret_filter", None)


def register_secret(secret: str) -> None:
    """Mask ``secret`` in all log output from now on."""

    f = _secret_filter(logging.getLogger())
    if f is not None:
        f.add(secret)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure the root logger once per process; return the log file actually used.

    /var/log may not be writable (non-root runs, containers). In that case the
    log goes to ./nr-php-installer.log and the fallback is reported. Console
    output goes to stderr so ``plan`` JSON on stdout stays clean.
    """

    root = logging.getLogger()
    root.setLevel(level)

    if getattr(root, "_nr_php_configured", False):
        return getattr(root, "_nr_php_log_path", log_path)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
    secret_filter = SecretFilter()
    handlers: list[logging.Handler] = []

    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
        chosen_path = log_path
    except OSError:
        chosen_path = str(Path.cwd() / "nr-php-installer.log")
        handlers.append(logging.FileHandler(chosen_path))

    if also_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    for h in handlers:
        h.setFormatter(fmt)
        h.addFilter(secret_filter)
        root.addHandler(h)

    setattr(root, "_nr_php_configured", True)
    setattr(root, "_nr_php_log_path", chosen_path)
    setattr(root, "_nr_php_secret_filter", secret_filter)

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path
