from __future__ import annotations

import logging

from nr_php_installer.logging_utils import configure_logging, register_secret


def test_log_file_created_and_secret_masked(tmp_path):
    log_path = tmp_path / "logs" / "run.log"
    actual = configure_logging(log_path=str(log_path), also_console=False)
    register_secret("abc123")

    logging.getLogger("nr_php_installer.test").info("installing with key %s", "abc123")
    for h in logging.getLogger().handlers:
        h.flush()

    assert actual == str(log_path)
    txt = log_path.read_text(encoding="utf-8")
    assert "installing with key ***" in txt
    assert "abc123" not in txt


def test_configure_is_idempotent(tmp_path):
    first = configure_logging(log_path=str(tmp_path / "a.log"), also_console=False)
    second = configure_logging(log_path=str(tmp_path / "b.log"), also_console=False)
    assert first == second == str(tmp_path / "a.log")
