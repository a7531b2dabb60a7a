# This file is part of bootmeta. See LICENSE file for license information.

import collections.abc
import configparser
import io
import logging
import logging.config
import os
import sys
import time

DEFAULT_LOG_FORMAT = "%(asctime)s - %(filename)s[%(levelname)s]: %(message)s"

# What logging.config.fileConfig raises for a config it cannot apply
LOG_CFG_ERRORS = (
    configparser.Error,
    ImportError,
    KeyError,
    OSError,
    RuntimeError,
    TypeError,
    ValueError,
)


def setup_basic_logging(level=logging.DEBUG, formatter=None):
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter or logging.Formatter(DEFAULT_LOG_FORMAT))
    console.setLevel(level)
    root = logging.getLogger()
    root.addHandler(console)
    root.setLevel(level)


def logexc(log, msg, *args, log_level: int = logging.WARNING) -> None:
    """Log msg at log_level and the active traceback at debug."""
    log.log(log_level, msg, *args)
    log.debug(msg, *args, exc_info=True)


def _log_cfg_entries(cfg):
    for entry in cfg.get("log_cfgs") or []:
        if isinstance(entry, str):
            yield entry
        elif isinstance(entry, collections.abc.Iterable):
            yield "\n".join(str(line) for line in entry)
        else:
            yield str(entry)


def setup_logging(cfg=None):
    """Configure the root logger from the 'log_cfgs' system config entry.

    Each 'log_cfgs' entry is an absolute path to a logging fileConfig file,
    or a fileConfig document given as a string or a list of lines. The first
    entry that applies wins, entries that fail to load are skipped. When
    none applies, basic stderr logging is set up unless 'log_basic' is
    False, at DEBUG level if 'debug' is set.
    """
    cfg = cfg or {}
    configure_root_logger()

    tried = 0
    for log_cfg in _log_cfg_entries(cfg):
        tried += 1
        if not (log_cfg.startswith("/") and os.path.isfile(log_cfg)):
            log_cfg = io.StringIO(log_cfg)
        try:
            logging.config.fileConfig(
                log_cfg, disable_existing_loggers=False
            )
        except LOG_CFG_ERRORS as e:
            # logging is not configured yet
            sys.stderr.write(
                "WARN: skipping log_cfgs entry %s: %r\n" % (tried, e)
            )
            continue
        return

    if tried:
        sys.stderr.write(
            "WARN: no logging configured! (tried %s configs)\n" % tried
        )
    if cfg.get("log_basic", True):
        setup_basic_logging(
            level=logging.DEBUG if cfg.get("debug") else logging.INFO
        )


def reset_logging():
    """Remove all root logger handlers and unset its level."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.flush()
        handler.close()
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


def configure_root_logger():
    """Start the root logger afresh, with UTC timestamps."""
    logging.Formatter.converter = time.gmtime
    reset_logging()
