import logging

import pytest


@pytest.fixture
def sys_cfg():
    return {
        "datasource": {
            "Packet": {
                "metadata_url": "http://metadata.test/metadata",
                "retries": 2,
                "sec_between": 0,
            }
        }
    }

@pytest.fixture
def m_sleep(mocker):
    return mocker.patch("time.sleep")

@pytest.fixture
def clean_root_logger():
    """Undo root logger changes made by a test.

    Handlers added by the test are dropped without being flushed, their
    stream may be a captured stderr that is already closed.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    converter = logging.Formatter.converter
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    logging.Formatter.converter = converter
