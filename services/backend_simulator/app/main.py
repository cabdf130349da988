"""Backend simulado para o teste PIX.

Expõe só o contrato HTTP consumido pelo harness (pedidos, pagamentos,
processamento e status), com erros no formato do backend NestJS:
``{"statusCode": ..., "message": ..., "error": ...}``.

Variáveis: ``SIM_SETTLEMENT_DELAY`` (s), ``SIM_OUTCOME`` (aprovado|recusado),
``SIM_PROVIDER_ERROR`` (quando definida, ``processar`` falha com 500).
"""
from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .models import PagamentoCreate, PagamentoOut, PedidoCreate, PedidoOut
from .state import NotFound, ProviderError, store

logger = logging.getLogger("backend_simulator")

app = FastAPI(title="Backend Simulator (PIX)", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def nest_error(status_code: int, message: Any, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "message": message, "error": error},
    )


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [f"{'.'.join(str(p) for p in err['loc'][1:])} {err['msg']}" for err in exc.errors()]
    return nest_error(400, messages, "Bad Request")


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return nest_error(404, str(exc) or "Não encontrado", "Not Found")


@app.exception_handler(ProviderError)
async def provider_handler(request: Request, exc: ProviderError) -> JSONResponse:
    cid = request.headers.get("X-Correlation-Id", "anon")
    logger.error("erro do provedor: %s (cid=%s)", exc, cid)
    return nest_error(500, str(exc), "Internal Server Error")


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Hello World!"


@app.post("/pedidos", status_code=201, response_model=PedidoOut)
async def create_pedido(payload: PedidoCreate) -> Any:
    pedido = await store.create_pedido(payload)
    return pedido.snapshot()


@app.post("/pagamentos", status_code=201, response_model=PagamentoOut)
async def create_pagamento(payload: PagamentoCreate) -> Any:
    pagamento = await store.create_pagamento(payload)
    return pagamento.snapshot()


@app.post("/pagamentos/{pagamento_id}/processar", status_code=201, response_model=PagamentoOut)
async def processar(pagamento_id: int) -> Any:
    pagamento = await store.processar(pagamento_id)
    logger.info("pagamento %s processado (transacao %s)", pagamento.id, pagamento.transacao_id)
    return pagamento.snapshot()


@app.get("/pagamentos/{pagamento_id}/status")
async def status(pagamento_id: int) -> dict[str, Any]:
    pagamento = await store.get_pagamento(pagamento_id)
    return {"id": pagamento.id, "status": pagamento.status, "transacaoId": pagamento.transacao_id}


@app.get("/pagamentos/{pagamento_id}", response_model=PagamentoOut)
async def get_pagamento(pagamento_id: int) -> Any:
    pagamento = await store.get_pagamento(pagamento_id)
    return pagamento.snapshot()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
