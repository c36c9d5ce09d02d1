"""
utils.py

Small logging helpers shared across the annotator. Library modules only
create named loggers; the one place that installs handlers is
`configure_logging`, called by the CLI.

The public helpers:
- `safe_log_exception(msg, exc, **ctx)` : logs exceptions robustly
- `configure_logging(level=None)`       : stream handler with the project format
- `finite_pair(value, name)`            : coerce an (x, y) pair to finite floats

"""

from typing import Any, Optional, Tuple
import sys
import math
import numbers
import logging

from geolabel.annotator.config import LOGGING

logger = logging.getLogger(__name__)


def safe_log_exception(msg: str, exc: Exception, **ctx: Any) -> None:
	"""Log an exception robustly.

	Attempts to call `logger.exception`. If logging fails for any reason,
	falls back to writing a compact message to `sys.stderr`.
	"""
	try:
		if ctx:
			ctx_s = ' | '.join(f"{k}={v!r}" for k, v in ctx.items())
			logger.exception('%s | %s | %s', msg, exc, ctx_s)
		else:
			logger.exception('%s | %s', msg, exc)
	except Exception:
		# Minimal fallback: write a compact failure message to stderr.
		try:
			sys.stderr.write(f'LOGGING FAILURE: {msg} {exc}\n')
		except Exception:
			pass


def configure_logging(level: Optional[str] = None) -> logging.Logger:
	"""Attach a single stream handler to the ``geolabel`` logger.

	Calling this twice does not duplicate handlers.
	"""
	root = logging.getLogger('geolabel')
	level_name = (level or LOGGING['level']).upper()
	root.setLevel(getattr(logging, level_name, logging.INFO))
	if not any(getattr(h, '_geolabel_handler', False) for h in root.handlers):
		handler = logging.StreamHandler()
		handler.setFormatter(logging.Formatter(LOGGING['format'], datefmt=LOGGING['datefmt']))
		handler._geolabel_handler = True
		root.addHandler(handler)
	return root


def finite_pair(value: Any, name: str = 'point') -> Tuple[float, float]:
	"""Return ``value`` as a tuple of two finite floats.

	Raises ``ValueError`` for wrong arity, non-numeric or non-finite input.
	"""
	try:
		x, y = value
	except (TypeError, ValueError) as e:
		raise ValueError(f'{name} must be an (x, y) pair of numbers, got {value!r}') from e
	if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in (x, y)):
		raise ValueError(f'{name} must be an (x, y) pair of numbers, got {value!r}')
	fx, fy = float(x), float(y)
	if not (math.isfinite(fx) and math.isfinite(fy)):
		raise ValueError(f'{name} must be finite, got {value!r}')
	return fx, fy
