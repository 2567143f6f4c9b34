"""
Logging configuration for the dependency graph service.
Plain text output by default, JSON lines when enabled.
"""

import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger.json import JsonFormatter


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter with timestamp, app and source location."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['app'] = 'chlens'
        log_record['source'] = f"{record.name}:{record.lineno}"
        log_record['environment'] = os.getenv('ENVIRONMENT', 'development')


def setup_logging(log_level: str = "INFO", enable_json: bool = False) -> None:
    """
    Set up logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_json: Emit one JSON object per record
    """
    log_level = (log_level or "INFO").upper()

    if enable_json:
        formatter = {
            '()': CustomJsonFormatter,
            'format': '%(asctime)s %(name)s %(levelname)s %(message)s'
        }
    else:
        formatter = {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s [%(filename)s:%(lineno)d]'
        }

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {'default': formatter},
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': 'default',
                'stream': 'ext://sys.stderr'
            }
        },
        'root': {
            'level': log_level,
            'handlers': ['console']
        },
        'loggers': {
            'chlens': {
                'level': log_level,
                'propagate': True
            },
            # Reduce noise from third-party libraries
            'urllib3': {
                'level': 'WARNING',
                'propagate': True
            },
            'werkzeug': {
                'level': 'WARNING',
                'propagate': True
            },
            'clickhouse_connect': {
                'level': 'WARNING',
                'propagate': True
            }
        }
    }

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the application's logging configuration."""
    return logging.getLogger(name)
