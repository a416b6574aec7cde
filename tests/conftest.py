import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_capx_logger():
    # init_logging() detaches the "capx" logger from root; undo that per test
    yield
    logger = logging.getLogger("capx")
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
