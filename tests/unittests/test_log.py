# This file is part of bootmeta. See LICENSE file for license information.

"""Tests for bootmeta.log"""

import logging
import time

import pytest

from bootmeta import log

LOG_CFG = """\
[loggers]
keys=root

[handlers]
keys=stderr

[formatters]
keys=simple

[logger_root]
level=INFO
handlers=stderr

[handler_stderr]
class=StreamHandler
level=INFO
formatter=simple
args=(sys.stderr,)

[formatter_simple]
format=%(levelname)s %(message)s
"""


@pytest.mark.usefixtures("clean_root_logger")
class TestSetupLogging:
    def test_basic_logging_fallback(self, capsys):
        log.setup_logging({})
        root = logging.getLogger()
        assert logging.INFO == root.level
        assert [logging.StreamHandler] == [type(h) for h in root.handlers]
        assert "WARN" not in capsys.readouterr().err

    def test_debug_basic_logging(self):
        log.setup_logging({"debug": True})
        assert logging.DEBUG == logging.getLogger().level

    def test_no_basic_logging(self):
        log.setup_logging({"log_basic": False})
        root = logging.getLogger()
        assert logging.NOTSET == root.level
        assert [] == root.handlers

    def test_log_cfgs_string(self, mocker):
        m_file_config = mocker.patch("logging.config.fileConfig")
        log.setup_logging({"log_cfgs": [LOG_CFG]})
        assert 1 == m_file_config.call_count
        cfg = m_file_config.call_args[0][0]
        assert LOG_CFG == cfg.getvalue()
        assert {"disable_existing_loggers": False} == (
            m_file_config.call_args[1]
        )

    def test_log_cfgs_lines(self, mocker):
        m_file_config = mocker.patch("logging.config.fileConfig")
        log.setup_logging({"log_cfgs": [LOG_CFG.splitlines()]})
        assert LOG_CFG.rstrip("\n") == (
            m_file_config.call_args[0][0].getvalue()
        )

    def test_log_cfgs_path(self, mocker, tmp_path):
        m_file_config = mocker.patch("logging.config.fileConfig")
        path = tmp_path / "logging.cfg"
        path.write_text(LOG_CFG)
        log.setup_logging({"log_cfgs": [str(path)]})
        m_file_config.assert_called_once_with(
            str(path), disable_existing_loggers=False
        )

    @pytest.mark.parametrize(
        "error",
        [
            FileNotFoundError("/dev/log"),
            KeyError("formatters"),
            ValueError("Unknown level: 'LOUD'"),
        ],
    )
    def test_failing_entry_tries_next(self, mocker, capsys, error):
        m_file_config = mocker.patch("logging.config.fileConfig")
        m_file_config.side_effect = [error, None]
        log.setup_logging({"log_cfgs": ["broken", LOG_CFG]})
        assert 2 == m_file_config.call_count
        err = capsys.readouterr().err
        assert "WARN: skipping log_cfgs entry 1" in err
        assert "no logging configured" not in err
        assert [] == logging.getLogger().handlers

    def test_malformed_entry_falls_back(self, capsys):
        log.setup_logging(
            {"log_cfgs": ["[loggers]\nkeys=root\n"], "debug": True}
        )
        err = capsys.readouterr().err
        assert "WARN: skipping log_cfgs entry 1: KeyError" in err
        assert "WARN: no logging configured! (tried 1 configs)" in err
        root = logging.getLogger()
        assert logging.DEBUG == root.level
        assert [logging.StreamHandler] == [type(h) for h in root.handlers]

    def test_all_log_cfgs_fail(self, mocker, capsys):
        m_file_config = mocker.patch("logging.config.fileConfig")
        m_file_config.side_effect = FileNotFoundError("/dev/log")
        log.setup_logging({"log_cfgs": [LOG_CFG], "log_basic": False})
        assert (
            "WARN: no logging configured! (tried 1 configs)"
            in capsys.readouterr().err
        )
        assert [] == logging.getLogger().handlers


class TestLogexc:
    def test_logexc(self, caplog):
        logger = logging.getLogger("test_bootmeta_logexc")
        with caplog.at_level(logging.DEBUG):
            try:
                raise ValueError("boom")
            except ValueError:
                log.logexc(logger, "failed %s", "thing")
        assert [
            (logging.WARNING, "failed thing"),
            (logging.DEBUG, "failed thing"),
        ] == [(r.levelno, r.getMessage()) for r in caplog.records]
        assert caplog.records[1].exc_info is not None
        assert caplog.records[0].exc_info is None


@pytest.mark.usefixtures("clean_root_logger")
class TestConfigureRootLogger:
    def test_uses_gmtime(self):
        log.configure_root_logger()
        assert time.gmtime is logging.Formatter.converter
        assert [] == logging.getLogger().handlers
