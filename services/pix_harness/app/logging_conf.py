import logging
import os
import sys
import time
from typing import Optional

from pythonjsonlogger import jsonlogger

from .config import ConfigError


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        # campos do format string chegam como None
        if not log_record.get("timestamp"):
            log_record["timestamp"] = time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())
        if not log_record.get("level"):
            log_record["level"] = record.levelname
        log_record.setdefault("service", getattr(record, 'service', 'pix_harness'))
        # Correlation id (cid) = run id, enviado também no header X-Correlation-Id
        cid = getattr(record, 'cid', None)
        if cid:
            log_record["cid"] = cid


def configure_logging(service_name: str = "pix_harness", level: Optional[str] = None) -> logging.Logger:
    level_name = (level or os.getenv("LOG_LEVEL") or "WARNING").strip().upper()
    if not isinstance(logging.getLevelName(level_name), int):
        raise ConfigError(f"LOG_LEVEL inválido: {level_name!r}")
    logger = logging.getLogger(service_name)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    # stdout fica reservado para o transcript
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level_name)
    logger.propagate = False
    return logger
