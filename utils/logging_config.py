"""Logging configuration for the receipt pipeline."""

import os
import logging
import logging.config
import json
from datetime import datetime
from typing import Dict, Any, Optional, Tuple, MutableMapping
from uuid import UUID

PIPELINE_LOGGERS = ('ocr', 'services', 'storage', 'utils', 'routes')
MAX_LOG_BYTES = 10485760  # 10MB


def setup_logging(
    log_dir: str = 'logs',
    debug_mode: bool = False,
    log_to_file: bool = True
) -> None:
    """
    Set up logging configuration for the application.

    Pipeline packages additionally write one JSON object per record to
    ``pipeline_<date>.log`` so job-scoped records can be filtered by job id.

    Args:
        log_dir: Directory to store log files
        debug_mode: Whether to enable debug logging
        log_to_file: Whether to log to files
    """
    level = 'DEBUG' if debug_mode else 'INFO'

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s'
            },
            'json': {
                '()': 'utils.logging_config.JsonFormatter'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': level,
                'formatter': 'standard',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': level
            }
        }
    }

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d')
        config['handlers'].update({
            'error_file': _rotating_handler(log_dir, f'error_{timestamp}.log', 'ERROR', 'detailed'),
            'info_file': _rotating_handler(log_dir, f'info_{timestamp}.log', 'INFO', 'standard'),
            'pipeline_file': _rotating_handler(log_dir, f'pipeline_{timestamp}.log', level, 'json')
        })
        config['loggers']['']['handlers'].extend(['error_file', 'info_file'])
        if debug_mode:
            config['handlers']['debug_file'] = _rotating_handler(
                log_dir, f'debug_{timestamp}.log', 'DEBUG', 'detailed'
            )
            config['loggers']['']['handlers'].append('debug_file')

        # Pipeline packages propagate to root and also feed the JSON log
        for name in PIPELINE_LOGGERS:
            config['loggers'][name] = {
                'handlers': ['pipeline_file'],
                'level': level,
                'propagate': True
            }

    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.info('Logging system initialized')
    if debug_mode:
        logger.debug('Debug mode enabled')


def _rotating_handler(log_dir: str, filename: str, level: str, formatter: str) -> Dict[str, Any]:
    return {
        'class': 'logging.handlers.RotatingFileHandler',
        'level': level,
        'formatter': formatter,
        'filename': os.path.join(log_dir, filename),
        'maxBytes': MAX_LOG_BYTES,
        'backupCount': 5
    }


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        data = getattr(record, 'data', None)
        if data:
            # Job id is promoted so pipeline logs can be grepped per receipt
            if 'job_id' in data:
                log_data['job_id'] = data['job_id']
            log_data['data'] = {key: value for key, value in data.items() if key != 'job_id'}

        return json.dumps(log_data, default=str)


class JobLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that tags every record with the receipt job it belongs to."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        job_id = self.extra['job_id']
        extra = kwargs.setdefault('extra', {})
        data = dict(extra.get('data') or {})
        data.setdefault('job_id', job_id)
        extra['data'] = data
        return f"[job {job_id}] {msg}", kwargs


def log_with_context(logger, level: int, msg: str, context: Optional[Dict[str, Any]] = None, **kwargs) -> None:
    """
    Log a message with structured fields attached as ``record.data``.

    Context is merged into any ``data`` already passed through ``extra``, so
    a job logger adapter can add the job id on top.
    """
    if context:
        extra = kwargs.setdefault('extra', {})
        extra['data'] = {**(extra.get('data') or {}), **context}
    logger.log(level, msg, **kwargs)


def get_job_logger(name: str, job_id: Optional[UUID]) -> JobLoggerAdapter:
    """Logger whose records carry the given receipt job id."""
    return JobLoggerAdapter(logging.getLogger(name), {'job_id': str(job_id)})
