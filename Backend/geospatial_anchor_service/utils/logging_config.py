"""
Logging Configuration for Geospatial Anchor Service
Structured console logging with optional rotating log files
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Optional

from .config import settings, Settings


def build_logging_config(config: Optional[Settings] = None) -> dict:
    """Build the dictConfig for the service"""
    config = config or settings

    handlers = {
        'console': {
            'level': config.LOG_LEVEL,
            'class': 'logging.StreamHandler',
            'formatter': 'detailed',
            'stream': sys.stdout
        }
    }
    root_handlers = ['console']

    if config.LOG_DIR:
        logs_dir = Path(config.LOG_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)

        handlers['file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': str(logs_dir / 'geospatial_anchor_service.log'),
            'maxBytes': 10 * 1024 * 1024,  # 10MB
            'backupCount': 5,
            'encoding': 'utf-8'
        }
        handlers['error_file'] = {
            'level': 'ERROR',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': str(logs_dir / 'errors.log'),
            'maxBytes': 10 * 1024 * 1024,  # 10MB
            'backupCount': 3,
            'encoding': 'utf-8'
        }
        root_handlers.extend(['file', 'error_file'])

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {
                'format': '[%(asctime)s] %(levelname)s [%(name)s:%(lineno)d] %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'simple': {
                'format': '%(levelname)s %(message)s'
            }
        },
        'handlers': handlers,
        'loggers': {
            '': {  # Root logger
                'level': config.LOG_LEVEL,
                'handlers': root_handlers,
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
        }
    }


def setup_logging(config: Optional[Settings] = None):
    """Setup application logging configuration"""
    config = config or settings

    logging.config.dictConfig(build_logging_config(config))

    # Set specific loggers to appropriate levels
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"🚀 Geospatial Anchor Service logging initialized - Level: {config.LOG_LEVEL}, Environment: {config.ENVIRONMENT}")
