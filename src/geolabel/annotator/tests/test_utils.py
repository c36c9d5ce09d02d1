import logging

import pytest

from geolabel.annotator import utils


def test_safe_log_exception_logs(caplog):
    with caplog.at_level(logging.ERROR, logger='geolabel.annotator.utils'):
        try:
            raise ValueError('boom')
        except ValueError as e:
            utils.safe_log_exception('decode failed', e, generation=3)
    assert 'decode failed' in caplog.text
    assert 'generation=3' in caplog.text


def test_safe_log_exception_fallback(capfd):
    # Force logger.exception to raise by setting logger to a dummy that raises
    class BadLogger:
        def exception(self, *args, **kwargs):
            raise RuntimeError('logger failed')

    old_logger = utils.logger
    try:
        utils.logger = BadLogger()
        try:
            raise ValueError('boom')
        except Exception as e:
            utils.safe_log_exception('test message', e, key='value')
        captured = capfd.readouterr()
        assert 'LOGGING FAILURE' in captured.err
    finally:
        utils.logger = old_logger


def test_configure_logging_is_idempotent():
    root = utils.configure_logging('debug')
    n = len(root.handlers)
    utils.configure_logging('info')
    assert len(root.handlers) == n
    assert root.level == logging.INFO


def test_finite_pair():
    assert utils.finite_pair((1, 2.5)) == (1.0, 2.5)
    for bad in [(1,), (1, float('inf')), ('1', 2), (True, 1), None]:
        with pytest.raises(ValueError):
            utils.finite_pair(bad)
