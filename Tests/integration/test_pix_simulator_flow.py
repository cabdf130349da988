"""Fluxo PIX completo contra o backend simulado (ASGI em memória, sem rede)."""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from services.backend_simulator.app.main import app
from services.backend_simulator.app.state import store
from services.pix_harness.app.cli import run_checkout
from services.pix_harness.app.config import HarnessSettings
from services.pix_harness.app.flow import STEP_PROCESS, STEP_STATUS


class FakeClock:
    """Relógio compartilhado: o sleep do harness avança o tempo do simulador."""

    def __init__(self):
        self.now = 1000.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    fake = FakeClock()
    store.clock = fake
    store.reset(settlement_delay=1.5, outcome="aprovado", provider_error="")
    yield fake
    store.reset()


def _run(clock, **settings):
    config = HarnessSettings(base_url="http://simulador", **settings)
    transport = httpx.ASGITransport(app=app)
    return asyncio.run(run_checkout(config, transport=transport, sleep=clock.sleep))


def test_fluxo_aprovado_apos_espera(clock):
    report = _run(clock)
    assert report.exit_code == 0
    assert report.verdict == "approved"
    assert clock.sleeps == [2.0]
    processed = report.record(STEP_PROCESS).outcome.value
    assert processed.field("transacaoId") == "SIM-000001"
    assert processed.field("qrCode").startswith("000201")
    assert processed.field("qrCodeBase64")


def test_status_pendente_quando_liquidacao_demora(clock):
    store.reset(settlement_delay=30.0, outcome="aprovado", provider_error="")
    report = _run(clock)
    assert report.exit_code == 0
    assert report.verdict == "pending"


def test_polling_alcanca_liquidacao(clock):
    store.reset(settlement_delay=3.5, outcome="recusado", provider_error="")
    report = _run(clock, poll_attempts=3, poll_backoff=2.0)
    assert report.verdict == "declined"
    assert report.record(STEP_STATUS).attempts == 2
    assert clock.sleeps == [2.0, 2.0]


def test_erro_do_provedor_aborta_com_mensagem(clock):
    store.reset(settlement_delay=1.5, outcome="aprovado", provider_error="invalid token")
    report = _run(clock)
    assert report.exit_code == 1
    assert report.failure.name == STEP_PROCESS
    assert report.failure.error.status_code == 500
    assert report.failure.error.message == "Falha ao criar pagamento PIX: invalid token"
    assert report.record(STEP_STATUS).skipped


def test_ids_sequenciais_entre_execucoes(clock):
    _run(clock)
    report = _run(clock)
    assert report.record("pedido").outcome.value.field("id") == 2
    assert report.record("pagamento").outcome.value.field("id") == 2


def test_simulador_responde_no_formato_nest(clock):
    client = TestClient(app)
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "Hello World!"

    r = client.post("/pagamentos", json={"valor": "10.00", "metodoPagamento": "pix", "pedidoId": 77})
    assert r.status_code == 404
    assert r.json() == {"statusCode": 404, "message": "Pedido não encontrado", "error": "Not Found"}

    r = client.post("/pedidos", json={"descricao": "x", "enderecoOrigem": "a", "enderecoDestino": "b", "valor": "abc"})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Bad Request"
    assert isinstance(body["message"], list)


def test_pagamento_inexistente_responde_404_no_formato_nest(clock):
    client = TestClient(app)
    for method, path in (("GET", "/pagamentos/999/status"), ("POST", "/pagamentos/999/processar")):
        r = client.request(method, path)
        assert r.status_code == 404
        assert r.json() == {"statusCode": 404, "message": "Pagamento não encontrado", "error": "Not Found"}
