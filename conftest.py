import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_geolabel_logging():
    """Drop handlers installed by `configure_logging` after each test.

    The CLI attaches a stream handler bound to the sys.stderr of the test that
    called it; pytest swaps that stream out between tests, so a leftover
    handler would write to a closed file.
    """
    yield
    root = logging.getLogger('geolabel')
    for handler in list(root.handlers):
        if getattr(handler, '_geolabel_handler', False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
