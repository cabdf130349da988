from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional, TypeVar

import httpx

DEFAULT_BASE_URL = "http://localhost:3000"

T = TypeVar("T")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class HarnessSettings:
    """Configuração de uma execução do teste PIX.

    Precedência: flags da CLI > variáveis de ambiente > valores padrão.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0
    settlement_delay_ms: int = 2000
    poll_attempts: int = 1
    poll_backoff: float = 2.0
    valor: str = "150.00"
    endereco_origem: str = "Rua A, 123"
    endereco_destino: str = "Rua B, 456"

    @property
    def settlement_delay(self) -> float:
        return self.settlement_delay_ms / 1000.0

    def validate(self) -> "HarnessSettings":
        self._validate_base_url()
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ConfigError("timeout deve ser maior que zero")
        if self.settlement_delay_ms < 0:
            raise ConfigError("settlement_delay_ms não pode ser negativo")
        if self.poll_attempts < 1:
            raise ConfigError("poll_attempts deve ser pelo menos 1")
        if self.poll_backoff < 0:
            raise ConfigError("poll_backoff não pode ser negativo")
        return self

    def _validate_base_url(self) -> None:
        try:
            url = httpx.URL(self.base_url)
        except httpx.InvalidURL as exc:
            raise ConfigError(f"base_url inválida: {self.base_url!r} ({exc})") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigError(f"base_url inválida: {self.base_url!r}")
        if url.port is not None and not 0 <= url.port <= 65535:
            raise ConfigError(f"porta fora do intervalo 0-65535 em base_url: {url.port}")

    def override(self, **values) -> "HarnessSettings":
        return replace(self, **{k: v for k, v in values.items() if v is not None})


def _env(environ: Mapping[str, str], key: str, cast: Callable[[str], T], default: T) -> T:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{key} inválido: {raw!r}") from exc


def load_settings(environ: Optional[Mapping[str, str]] = None) -> HarnessSettings:
    env = os.environ if environ is None else environ
    defaults = HarnessSettings()
    return HarnessSettings(
        base_url=_env(env, "PIX_HARNESS_BASE_URL", str, defaults.base_url),
        timeout=_env(env, "PIX_HARNESS_TIMEOUT", float, defaults.timeout),
        settlement_delay_ms=_env(env, "PIX_HARNESS_SETTLEMENT_DELAY_MS", int, defaults.settlement_delay_ms),
        poll_attempts=_env(env, "PIX_HARNESS_POLL_ATTEMPTS", int, defaults.poll_attempts),
        poll_backoff=_env(env, "PIX_HARNESS_POLL_BACKOFF", float, defaults.poll_backoff),
        valor=_env(env, "PIX_HARNESS_VALOR", str, defaults.valor),
    )
