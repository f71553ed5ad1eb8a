"""
JSON structured logging configuration using python-json-logger
"""
import logging
import logging.config
import sys
from typing import Dict, Any

import pythonjsonlogger.jsonlogger

from app.config import get_settings


# Shared application logger, configured by setup_logging()
logger = logging.getLogger("app")


class CustomJsonFormatter(pythonjsonlogger.jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['service'] = 'launchlab-api'

        # Pipeline identifiers, when the caller passed them via extra=
        for key in ('analysis_id', 'job_id', 'request_id'):
            if hasattr(record, key):
                log_record[key] = str(getattr(record, key))


def setup_logging() -> None:
    """Setup JSON structured logging"""
    settings = get_settings()

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': CustomJsonFormatter,
                'format': '%(asctime)s %(name)s %(levelname)s %(message)s'
            },
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': settings.LOG_LEVEL,
                'formatter': 'json' if settings.ENVIRONMENT == 'production' else 'standard',
                'stream': sys.stdout
            }
        },
        'loggers': {
            'app': {
                'level': settings.LOG_LEVEL,
                'handlers': ['console'],
                'propagate': False
            },
            'uvicorn': {
                'level': 'INFO',
                'handlers': ['console'],
                'propagate': False
            },
            'uvicorn.access': {
                'level': 'INFO',
                'handlers': ['console'],
                'propagate': False
            }
        },
        'root': {
            'level': settings.LOG_LEVEL,
            'handlers': ['console']
        }
    }

    logging.config.dictConfig(config)

    logger.info(
        "Logging configured",
        extra={
            'log_level': settings.LOG_LEVEL,
            'environment': settings.ENVIRONMENT
        }
    )
