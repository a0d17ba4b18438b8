# src/fidoenroll/logging.py
"""Logging setup with optional JSON output and redaction."""

import logging
import sys
from typing import Any, Dict

from .config import AppConfig

# Mapping keys whose values never reach a handler. pam-u2f credentials are
# logged as ``%(credential)s`` with dict args.
REDACTED_KEYS = {"credential", "pin"}


class RedactingFilter(logging.Filter):
    """Replace the values of REDACTED_KEYS in dict-style record args."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, dict):
            record.args = self._redact_dict(record.args)
        return True

    def _redact_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively redact sensitive keys in a dictionary."""
        redacted_data = {}
        for key, value in data.items():
            if key in REDACTED_KEYS:
                redacted_data[key] = "[REDACTED]"
            elif isinstance(value, dict):
                redacted_data[key] = self._redact_dict(value)
            else:
                redacted_data[key] = value
        return redacted_data


def setup_logging(config: AppConfig):
    """Configure the application logger."""
    log_level = config.logging.level.upper()

    if config.logging.json_format:
        from logging.config import dictConfig
        dictConfig({
            'version': 1,
            'disable_existing_loggers': False,
            'filters': {
                'redacting': {
                    '()': RedactingFilter,
                },
            },
            'formatters': {
                'json': {
                    '()': 'pythonjsonlogger.json.JsonFormatter',
                    'format': '%(asctime)s %(name)s %(levelname)s %(message)s',
                },
            },
            'handlers': {
                'json': {
                    'class': 'logging.StreamHandler',
                    'stream': 'ext://sys.stderr',
                    'formatter': 'json',
                    'filters': ['redacting'],
                },
            },
            'loggers': {
                'fidoenroll': {
                    'handlers': ['json'],
                    'level': log_level,
                    'propagate': False,
                },
            }
        })
    else:
        logger = logging.getLogger("fidoenroll")
        logger.setLevel(log_level)
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
            handler.addFilter(RedactingFilter())
            logger.addHandler(handler)
        logger.propagate = False
