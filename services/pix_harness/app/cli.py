"""Teste end-to-end do checkout PIX contra o backend em execução.

Exemplo:
    pix-checkout --base-url http://localhost:3000 --poll-attempts 3

Sai com código 0 quando o fluxo completa (qualquer status de negócio), 1 quando
o servidor não responde ou um passo fatal falha, 2 para configuração inválida.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from typing import List, Optional

import httpx
from rich.console import Console

from .config import ConfigError, HarnessSettings, load_settings
from .flow import build_pix_checkout_steps, pix_verdict
from .logging_conf import configure_logging
from .report import ConsoleReporter
from .runner import RunObserver, RunReport, SequentialRunner
from .transport import HttpTransport


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Teste PIX end-to-end: pedido -> pagamento -> QR Code -> status.",
    )
    parser.add_argument("--base-url", help="URL do backend (env PIX_HARNESS_BASE_URL, default http://localhost:3000).")
    parser.add_argument("--timeout", type=float, help="Timeout por requisição em segundos (default: 10).")
    parser.add_argument(
        "--settlement-delay-ms",
        type=int,
        help="Espera antes de consultar o status, em ms (default: 2000).",
    )
    parser.add_argument(
        "--poll-attempts",
        type=int,
        help="Máximo de consultas de status enquanto pendente (default: 1).",
    )
    parser.add_argument("--poll-backoff", type=float, help="Intervalo base entre consultas, em segundos.")
    parser.add_argument("--valor", help="Valor do pedido/pagamento (default: 150.00).")
    parser.add_argument("--json", action="store_true", help="Imprime o relatório estruturado em JSON.")
    parser.add_argument("--verbose", action="store_true", help="Logs detalhados (JSON) em stderr.")
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, base: Optional[HarnessSettings] = None) -> HarnessSettings:
    settings = base if base is not None else load_settings()
    return settings.override(
        base_url=args.base_url,
        timeout=args.timeout,
        settlement_delay_ms=args.settlement_delay_ms,
        poll_attempts=args.poll_attempts,
        poll_backoff=args.poll_backoff,
        valor=args.valor,
    ).validate()


async def run_checkout(
    settings: HarnessSettings,
    observer: Optional[RunObserver] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep=asyncio.sleep,
) -> RunReport:
    run_id = str(uuid.uuid4())
    async with HttpTransport(
        settings.base_url,
        timeout=settings.timeout,
        correlation_id=run_id,
        transport=transport,
    ) as client:
        runner = SequentialRunner(client, observer=observer, sleep=sleep, verdict=pix_verdict, run_id=run_id)
        return await runner.run(build_pix_checkout_steps(settings))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        logger = configure_logging(level="DEBUG" if args.verbose else None)
        settings = resolve_settings(args)
    except ConfigError as exc:
        print(f"Configuração inválida: {exc}", file=sys.stderr)
        return 2

    logger.info("iniciando teste PIX contra %s", settings.base_url)
    observer = None if args.json else ConsoleReporter(Console())
    report = asyncio.run(run_checkout(settings, observer=observer))
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2, default=str))
    logger.info("teste finalizado: %s", report.verdict, extra={"cid": report.run_id})
    return report.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
