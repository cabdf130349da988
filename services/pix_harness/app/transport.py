"""Camada fina sobre ``httpx`` para uma troca requisição/resposta.

Nunca lança exceção para o chamador: falhas de rede viram
``Err(ErrorKind.CONNECTION)`` e status fora de 2xx viram
``Err(ErrorKind.HTTP_STATUS)``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from .result import Err, ErrorKind, Ok, Outcome, StepResult

logger = logging.getLogger("pix_harness")

MAX_ERROR_TEXT = 300


def parse_body(text: str) -> Any:
    """Decodifica JSON; corpo vazio vira ``{}`` e JSON inválido fica como texto cru."""
    if not text:
        return {}
    try:
        return json.loads(text)
    except ValueError:
        return text


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def error_message(body: Any, text: str, status_code: int) -> str:
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if not value:
                continue
            # class-validator devolve uma lista de mensagens
            if isinstance(value, list):
                return "; ".join(str(item) for item in value)
            return str(value)
    if text.strip():
        return text[:MAX_ERROR_TEXT]
    return f"HTTP {status_code}"


class HttpTransport:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        correlation_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Content-Type": "application/json"}
        if correlation_id:
            headers["X-Correlation-Id"] = correlation_id
        self._extra = {"cid": correlation_id} if correlation_id else {}
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, body: Optional[dict] = None) -> Outcome:
        logger.debug("%s %s", method, path, extra=self._extra)
        try:
            if body is None:
                response = await self._client.request(method, path)
            else:
                response = await self._client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            logger.warning("timeout em %s %s: %s", method, path, exc, extra=self._extra)
            return Err(ErrorKind.CONNECTION, f"Erro de conexão: timeout após {self.timeout:g}s")
        except httpx.RequestError as exc:
            logger.warning("falha de conexão em %s %s: %s", method, path, exc, extra=self._extra)
            return Err(ErrorKind.CONNECTION, f"Erro de conexão: {exc}")

        text = response.text
        parsed = parse_body(text)
        logger.debug("%s %s -> %s", method, path, response.status_code, extra=self._extra)
        if is_success(response.status_code):
            return Ok(StepResult(status_code=response.status_code, body=parsed, text=text))
        return Err(
            ErrorKind.HTTP_STATUS,
            error_message(parsed, text, response.status_code),
            status_code=response.status_code,
            body=parsed,
        )
