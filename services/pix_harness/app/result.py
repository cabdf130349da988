"""Tipos de resultado da chamada HTTP.

Cada chamada produz um ``Ok`` (status 2xx) ou um ``Err`` com o tipo de falha.
O código que decide o que fazer com uma falha (abortar, avisar, sugerir
diagnóstico) olha para ``Err.kind``, nunca para o texto da mensagem.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class ErrorKind(str, Enum):
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"


@dataclass(frozen=True)
class StepResult:
    """Resposta já decodificada: JSON quando possível, texto cru caso contrário."""

    status_code: int
    body: Any
    text: str = ""

    def field(self, name: str, default: Any = None) -> Any:
        if isinstance(self.body, dict):
            return self.body.get(name, default)
        return default


@dataclass(frozen=True)
class Ok:
    value: StepResult

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    body: Any = None

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Ok, Err]
