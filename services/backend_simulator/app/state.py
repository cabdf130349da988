from __future__ import annotations

import asyncio
import base64
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .models import PagamentoCreate, PagamentoOut, PedidoCreate, PedidoOut


class ProviderError(Exception):
    pass


class NotFound(Exception):
    pass


@dataclass
class PedidoState:
    id: int
    descricao: str
    endereco_origem: str
    endereco_destino: str
    valor: str

    def snapshot(self) -> PedidoOut:
        return PedidoOut(
            id=self.id,
            descricao=self.descricao,
            enderecoOrigem=self.endereco_origem,
            enderecoDestino=self.endereco_destino,
            valor=self.valor,
        )


@dataclass
class PagamentoState:
    id: int
    pedido_id: int
    valor: str
    metodo: str
    status: str = "pendente"
    transacao_id: Optional[str] = None
    qr_code: Optional[str] = None
    ticket_url: Optional[str] = None
    processed_at: Optional[float] = None

    def snapshot(self) -> PagamentoOut:
        return PagamentoOut(
            id=self.id,
            valor=self.valor,
            metodoPagamento=self.metodo,
            status=self.status,
            pedidoId=self.pedido_id,
            transacaoId=self.transacao_id,
            qrCode=self.qr_code,
            qrCodeBase64=base64.b64encode(self.qr_code.encode()).decode() if self.qr_code else None,
            ticketUrl=self.ticket_url,
        )


class SimulatorStore:
    """Estado em memória do backend simulado.

    A liquidação é preguiçosa: o pagamento processado continua ``pendente`` até
    ``settlement_delay`` segundos depois do processamento, quando passa para
    ``outcome`` na primeira consulta.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self.reset()

    def reset(
        self,
        settlement_delay: Optional[float] = None,
        outcome: Optional[str] = None,
        provider_error: Optional[str] = None,
    ) -> None:
        self._lock = asyncio.Lock()
        self._pedidos: Dict[int, PedidoState] = {}
        self._pagamentos: Dict[int, PagamentoState] = {}
        self._next_pedido = 1
        self._next_pagamento = 1
        self.settlement_delay = (
            settlement_delay if settlement_delay is not None else float(os.getenv("SIM_SETTLEMENT_DELAY", "1.5"))
        )
        self.outcome = outcome or os.getenv("SIM_OUTCOME", "aprovado")
        self.provider_error = provider_error if provider_error is not None else os.getenv("SIM_PROVIDER_ERROR") or None

    async def create_pedido(self, payload: PedidoCreate) -> PedidoState:
        async with self._lock:
            pedido = PedidoState(
                id=self._next_pedido,
                descricao=payload.descricao,
                endereco_origem=payload.enderecoOrigem,
                endereco_destino=payload.enderecoDestino,
                valor=payload.valor,
            )
            self._pedidos[pedido.id] = pedido
            self._next_pedido += 1
            return pedido

    async def create_pagamento(self, payload: PagamentoCreate) -> PagamentoState:
        async with self._lock:
            if payload.pedidoId not in self._pedidos:
                raise NotFound("Pedido não encontrado")
            pagamento = PagamentoState(
                id=self._next_pagamento,
                pedido_id=payload.pedidoId,
                valor=payload.valor,
                metodo=payload.metodoPagamento,
            )
            self._pagamentos[pagamento.id] = pagamento
            self._next_pagamento += 1
            return pagamento

    async def get_pagamento(self, pagamento_id: int) -> PagamentoState:
        async with self._lock:
            pagamento = self._pagamentos.get(pagamento_id)
            if pagamento is None:
                raise NotFound("Pagamento não encontrado")
            self._settle(pagamento)
            return pagamento

    async def processar(self, pagamento_id: int) -> PagamentoState:
        async with self._lock:
            pagamento = self._pagamentos.get(pagamento_id)
            if pagamento is None:
                raise NotFound("Pagamento não encontrado")
            if self.provider_error:
                raise ProviderError(f"Falha ao criar pagamento PIX: {self.provider_error}")
            if pagamento.processed_at is None:
                pagamento.transacao_id = f"SIM-{pagamento.id:06d}"
                pagamento.qr_code = (
                    f"00020126580014br.gov.bcb.pix0136sim-{pagamento.id:06d}"
                    f"5204000053039865406{pagamento.valor}5802BR6304ABCD"
                )
                pagamento.ticket_url = f"https://sandbox.local/pix/{pagamento.transacao_id}"
                pagamento.status = "pendente"
                pagamento.processed_at = self.clock()
            return pagamento

    def _settle(self, pagamento: PagamentoState) -> None:
        if pagamento.processed_at is None or pagamento.status != "pendente":
            return
        if self.clock() - pagamento.processed_at >= self.settlement_delay:
            pagamento.status = self.outcome


store = SimulatorStore()
