"""Run configuration and logging setup"""
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from .fetcher import DEFAULT_TIMEOUT

LOG_FILENAME = 'oval-dict.log'
LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


@dataclass
class Config:
    """Settings for one conversion run, passed explicitly to the pipeline"""
    vuln_dir: str = 'vuln-data'
    http_proxy: Optional[str] = None
    debug: bool = False
    log_to_file: bool = False
    log_dir: str = 'log'
    log_json: bool = False
    validate: bool = False
    timeout: int = DEFAULT_TIMEOUT


class JSONFormatter(logging.Formatter):
    """Formats each record as a single JSON line"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'time': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            entry['exc'] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logger(config: Config) -> logging.Logger:
    """
    Configure the package logger from the run configuration.

    Logs go to stderr, and additionally to <log_dir>/oval-dict.log when
    log_to_file is set.
    """
    logger = logging.getLogger('ovaldict')
    logger.setLevel(logging.DEBUG if config.debug else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if config.log_json else logging.Formatter(LOG_FORMAT)

    handlers = [logging.StreamHandler(sys.stderr)]
    if config.log_to_file:
        os.makedirs(config.log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(config.log_dir, LOG_FILENAME), encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False
    return logger
