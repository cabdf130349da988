import io

from rich.console import Console

from services.pix_harness.app.flow import build_pix_checkout_steps
from services.pix_harness.app.config import HarnessSettings
from services.pix_harness.app.report import (
    CONNECTION_HINTS,
    PROVIDER_HINTS,
    ConsoleReporter,
    remediation_hints,
)
from services.pix_harness.app.result import Err, ErrorKind, Ok, StepResult
from services.pix_harness.app.runner import RunReport, RunState, StepRecord


def _report(outcomes, state=RunState.DONE, verdict="pending"):
    steps = build_pix_checkout_steps(HarnessSettings())
    records = []
    for step, outcome in zip(steps, outcomes + [None] * (len(steps) - len(outcomes))):
        records.append(StepRecord(step=step, outcome=outcome, attempts=1 if outcome else 0, skipped=outcome is None))
    return RunReport(run_id="r1", records=records, state=state, verdict=verdict)


def ok(body):
    return Ok(StepResult(status_code=200, body=body))


HAPPY = [
    ok("Hello World!"),
    ok({"id": 42}),
    ok({"id": 99}),
    ok({"transacaoId": "MP-1", "status": "pendente", "qrCode": "000201PIX", "ticketUrl": "https://t"}),
    ok({"status": "pendente"}),
]


def _render(report):
    console = Console(file=io.StringIO(), width=160, color_system=None)
    reporter = ConsoleReporter(console)
    reporter.run_started(report, [r.step for r in report.records])
    total = len(report.records)
    for index, record in enumerate(report.records, start=1):
        if not record.skipped:
            reporter.step_started(index, total, record.step)
        reporter.step_finished(index, total, record)
    reporter.run_finished(report)
    return console.file.getvalue()


def test_hint_de_conexao_por_tipo_de_erro():
    report = _report([Err(ErrorKind.CONNECTION, "Erro de conexão: refused")], state=RunState.ABORTED, verdict="aborted")
    assert remediation_hints(report) == CONNECTION_HINTS


def test_hint_de_credencial_quando_processamento_falha():
    report = _report(HAPPY[:3] + [Err(ErrorKind.HTTP_STATUS, "invalid token", 500)], state=RunState.ABORTED)
    assert remediation_hints(report) == PROVIDER_HINTS


def test_hint_nao_depende_do_texto_da_mensagem():
    # mensagem menciona conexão, mas o erro é HTTP em outro passo
    report = _report(HAPPY[:1] + [Err(ErrorKind.HTTP_STATUS, "ECONNREFUSED no banco", 500)], state=RunState.ABORTED)
    assert remediation_hints(report) == []


def test_sem_hints_no_caminho_feliz():
    assert remediation_hints(_report(HAPPY)) == []


def test_transcript_caminho_feliz():
    out = _render(_report(HAPPY))
    assert "TESTE PIX - MERCADO PAGO" in out
    assert "[1/5] Verificando servidor..." in out
    assert "Hello World!" in out
    assert "Pedido criado: ID 42" in out
    assert "Pagamento criado: ID 99" in out
    assert "DADOS DO PAGAMENTO PIX" in out
    assert "000201PIX" in out
    assert "Status: pendente" in out
    assert "TESTE CONCLUÍDO COM SUCESSO!" in out
    assert "Veredito: pending" in out


def test_transcript_abortado_mostra_mensagem_e_diagnostico():
    report = _report(HAPPY[:3] + [Err(ErrorKind.HTTP_STATUS, "invalid token", 500)], state=RunState.ABORTED, verdict="aborted")
    out = _render(report)
    assert "invalid token" in out
    assert "ERRO NO TESTE" in out
    assert "MERCADO_PAGO_ACCESS_TOKEN" in out
    assert "(ignorado)" in out


def test_mensagem_com_colchetes_nao_vira_markup():
    report = _report([Err(ErrorKind.HTTP_STATUS, "[bold]campo[/bold] inválido", 400)], state=RunState.ABORTED, verdict="aborted")
    out = _render(report)
    assert "[bold]campo[/bold] inválido" in out


def test_transcript_mostra_descricao_e_valor_do_pedido():
    pedido = ok({"id": 42, "descricao": "Teste PIX - 19/10/2026, 10:00:00", "valor": "150.00"})
    out = _render(_report(HAPPY[:1] + [pedido] + HAPPY[2:]))
    assert "Pedido criado: ID 42" in out
    assert "Descrição: Teste PIX - 19/10/2026, 10:00:00" in out
    assert "Valor: R$ 150.00" in out


def test_transcript_pedido_sem_detalhes_nao_imprime_linhas_vazias():
    out = _render(_report(HAPPY))
    assert "Descrição:" not in out
    assert "Valor: R$" not in out
