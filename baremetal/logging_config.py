"""
Structured JSON logging configuration.

Usage:
    from baremetal.logging_config import configure_logging

    configure_logging()  # reads LOG_LEVEL / LOG_FORMAT / LOG_FILE
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

CONTEXT_FIELDS = ('host', 'state', 'reason', 'error_type', 'current_rescue')


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, keyed for per-host log queries.

    Context passed with ``extra=`` becomes top-level keys. A state change
    (``old_state`` and ``new_state`` both set) is folded into a
    ``transition`` object so it can be filtered on directly.
    """

    def format(self, record):
        created = datetime.fromtimestamp(record.created, timezone.utc)
        entry = {
            'timestamp': created.isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'source': f'{record.module}:{record.lineno}',
        }

        for attr in CONTEXT_FIELDS:
            value = getattr(record, attr, None)
            if value is not None:
                entry[attr] = value

        old_state = getattr(record, 'old_state', None)
        new_state = getattr(record, 'new_state', None)
        if old_state is not None and new_state is not None:
            entry['transition'] = {'from': old_state, 'to': new_state}

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry)


def configure_logging(settings=None):
    """Configure logging for the ``baremetal`` and ``config`` loggers.

    Args:
        settings: Optional LoggingSettings; defaults to application settings.

    Returns:
        The configured ``baremetal`` logger.
    """
    if settings is None:
        from config.settings import get_settings
        settings = get_settings().logging

    level = getattr(logging, settings.level.upper(), logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    if settings.format == 'json':
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    handlers = [console_handler]

    if settings.file:
        file_handler = RotatingFileHandler(
            settings.file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    for name in ('baremetal', 'config'):
        named = logging.getLogger(name)
        named.setLevel(level)
        named.handlers = list(handlers)

    return logging.getLogger('baremetal')
