"""Definição do fluxo de checkout PIX: pedido -> pagamento -> processamento -> status."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from .config import HarnessSettings
from .result import StepResult
from .runner import PollPolicy, RunContext, RunReport, RunState, Step

STEP_SERVER = "servidor"
STEP_ORDER = "pedido"
STEP_PAYMENT = "pagamento"
STEP_PROCESS = "processamento"
STEP_STATUS = "status"


class PaymentStatus(str, Enum):
    PENDENTE = "pendente"
    PROCESSANDO = "processando"
    APROVADO = "aprovado"
    RECUSADO = "recusado"
    REEMBOLSADO = "reembolsado"


TERMINAL_STATUSES = {PaymentStatus.APROVADO.value, PaymentStatus.RECUSADO.value, PaymentStatus.REEMBOLSADO.value}

VERDICTS = {
    PaymentStatus.APROVADO.value: "approved",
    PaymentStatus.RECUSADO.value: "declined",
    PaymentStatus.REEMBOLSADO.value: "refunded",
    PaymentStatus.PENDENTE.value: "pending",
    PaymentStatus.PROCESSANDO.value: "pending",
}


def order_description(now: datetime) -> str:
    # mesmo formato de toLocaleString('pt-BR')
    return f"Teste PIX - {now.strftime('%d/%m/%Y, %H:%M:%S')}"


def is_settled(result: StepResult) -> bool:
    return result.field("status") in TERMINAL_STATUSES


def build_pix_checkout_steps(
    settings: HarnessSettings,
    now: Callable[[], datetime] = datetime.now,
) -> List[Step]:
    def order_body(context: RunContext) -> dict:
        return {
            "descricao": order_description(now()),
            "enderecoOrigem": settings.endereco_origem,
            "enderecoDestino": settings.endereco_destino,
            "valor": settings.valor,
        }

    def payment_body(context: RunContext) -> dict:
        return {
            "valor": settings.valor,
            "metodoPagamento": "pix",
            "pedidoId": context.field(STEP_ORDER, "id"),
        }

    return [
        Step(
            name=STEP_SERVER,
            method="GET",
            path="/",
            state=RunState.CHECKING_SERVER,
            label="Verificando servidor",
        ),
        Step(
            name=STEP_ORDER,
            method="POST",
            path="/pedidos",
            state=RunState.CREATING_ORDER,
            body=order_body,
            requires=(STEP_SERVER,),
            expects=("id",),
            label="Criando pedido",
        ),
        Step(
            name=STEP_PAYMENT,
            method="POST",
            path="/pagamentos",
            state=RunState.CREATING_PAYMENT,
            body=payment_body,
            requires=(STEP_ORDER,),
            expects=("id",),
            label="Criando pagamento PIX",
        ),
        Step(
            name=STEP_PROCESS,
            method="POST",
            path="/pagamentos/{pagamento[id]}/processar",
            state=RunState.PROCESSING_PAYMENT,
            requires=(STEP_PAYMENT,),
            label="Processando pagamento (gerando QR Code)",
        ),
        Step(
            name=STEP_STATUS,
            method="GET",
            path="/pagamentos/{pagamento[id]}/status",
            state=RunState.POLLING_STATUS,
            fatal=False,
            requires=(STEP_PAYMENT, STEP_PROCESS),
            wait_before=settings.settlement_delay,
            poll=PollPolicy(
                max_attempts=settings.poll_attempts,
                backoff=settings.poll_backoff,
                is_final=is_settled,
            ),
            label="Consultando status",
        ),
    ]


def business_status(report: RunReport) -> Optional[str]:
    record = report.record(STEP_STATUS)
    if record is None or not record.ok:
        return None
    return record.outcome.value.field("status")


def pix_verdict(report: RunReport) -> str:
    if report.aborted:
        return "aborted"
    if report.warnings:
        return "partial"
    return VERDICTS.get(business_status(report), "unknown")
