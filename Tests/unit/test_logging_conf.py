import io
import json
import logging

import pytest

from services.pix_harness.app.config import ConfigError
from services.pix_harness.app.logging_conf import configure_logging


def test_log_json_com_cid_e_servico():
    logger = configure_logging("pix_harness_test", level="INFO")
    stream = io.StringIO()
    logger.handlers[0].setStream(stream)
    logger.info("passo concluído", extra={"cid": "run-42"})
    record = json.loads(stream.getvalue())
    assert record["message"] == "passo concluído"
    assert record["level"] == "INFO"
    assert record["service"] == "pix_harness"
    assert record["cid"] == "run-42"
    assert "timestamp" in record


def test_reconfigurar_nao_duplica_handlers():
    configure_logging("pix_harness_test2")
    logger = configure_logging("pix_harness_test2", level="debug")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_nivel_invalido_gera_config_error():
    with pytest.raises(ConfigError, match="LOG_LEVEL"):
        configure_logging("pix_harness_test3", level="verbose")


def test_log_level_vazio_usa_warning(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "")
    logger = configure_logging("pix_harness_test4")
    assert logger.level == logging.WARNING
