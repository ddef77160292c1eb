import json
import logging
from datetime import datetime, timezone
from typing import Any

LOGGER_NAME = 'lambda_runtime_client'

# AWS_LAMBDA_LOG_LEVEL names that the logging module spells differently
LEVEL_ALIASES = {
    'TRACE': 'DEBUG',
    'WARN': 'WARNING',
    'FATAL': 'CRITICAL',
}


def level_name(level: str) -> str:
    name = level.upper()
    name = LEVEL_ALIASES.get(name, name)
    if not isinstance(logging.getLevelName(name), int):
        return 'INFO'
    return name


def configure(level: str = 'INFO') -> None:
    """Route runtime log lines to stderr as bare JSON messages"""
    logging.basicConfig(format='%(message)s')
    logging.getLogger(LOGGER_NAME).setLevel(level_name(level))


def get_logger(name: str = '') -> logging.Logger:
    if name:
        return logging.getLogger(f'{LOGGER_NAME}.{name}')
    return logging.getLogger(LOGGER_NAME)


def log_event(logger: logging.Logger, level: str, message: str, **fields: Any) -> None:
    """Emit structured log entry"""
    name = level_name(level)
    entry = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'level': name,
        'message': message,
    }
    entry.update(fields)
    logger.log(logging.getLevelName(name), json.dumps(entry, default=str))
