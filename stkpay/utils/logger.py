"""
Logging Configuration
Centralized logging setup for the STK Push service
"""

import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler

LOG_FILE = 'stkpay.log'
LOG_FILE_MAX_BYTES = 10485760  # 10MB
LOG_FILE_BACKUPS = 10

# Logged at DEBUG only
QUIET_PATHS = ('/health', '/health/live')


def _log_level() -> int:
    level = logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler():
    """Rotating file handler under LOG_DIR, or None when LOG_DIR is empty or unwritable"""
    log_dir = os.getenv('LOG_DIR', 'logs')
    if not log_dir:
        return None

    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        return None

    handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS
    )
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    return handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance

    The level comes from LOG_LEVEL (default INFO). Records go to stdout and,
    when LOG_DIR is set and writable, to a rotating stkpay.log.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        level = _log_level()
        logger.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
        logger.addHandler(console_handler)

        file_handler = _file_handler()
        if file_handler is not None:
            logger.addHandler(file_handler)

    return logger


class RequestLogger:
    """Logs each request with its status and duration"""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from flask import g, request

        logger = get_logger('stkpay.request')

        @app.before_request
        def start_timer():
            g.request_started = time.perf_counter()

        @app.after_request
        def log_response(response):
            started = g.pop('request_started', None)
            elapsed_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0

            level = logging.DEBUG if request.path in QUIET_PATHS else logging.INFO
            logger.log(
                level,
                '%s %s - Status: %s - %.1fms - IP: %s',
                request.method, request.path, response.status_code, elapsed_ms, request.remote_addr
            )
            return response
