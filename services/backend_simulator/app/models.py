from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

MetodoPagamento = Literal["cartao_credito", "cartao_debito", "pix", "boleto", "dinheiro"]
StatusPagamento = Literal["pendente", "processando", "aprovado", "recusado", "reembolsado"]


class PedidoCreate(BaseModel):
    descricao: str = Field(..., min_length=1)
    enderecoOrigem: str = Field(..., min_length=1)
    enderecoDestino: str = Field(..., min_length=1)
    valor: str = Field(..., pattern=r"^\d+(\.\d{1,2})?$")


class PagamentoCreate(BaseModel):
    valor: str = Field(..., pattern=r"^\d+(\.\d{1,2})?$")
    metodoPagamento: MetodoPagamento
    pedidoId: int = Field(..., gt=0)


class PedidoOut(BaseModel):
    id: int
    descricao: str
    enderecoOrigem: str
    enderecoDestino: str
    valor: str
    status: str = "pendente"


class PagamentoOut(BaseModel):
    id: int
    valor: str
    metodoPagamento: MetodoPagamento
    status: StatusPagamento
    pedidoId: int
    transacaoId: Optional[str] = None
    qrCode: Optional[str] = None
    qrCodeBase64: Optional[str] = None
    ticketUrl: Optional[str] = None
