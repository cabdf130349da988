"""Transcript em console (rich) sobre o ``RunReport``.

O reporter só observa o runner; toda decisão de diagnóstico é tomada a partir
de ``ErrorKind`` e do passo que falhou.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .flow import STEP_ORDER, STEP_PAYMENT, STEP_PROCESS, STEP_SERVER, STEP_STATUS
from .result import ErrorKind
from .runner import RunObserver, RunReport, Step, StepRecord

CONNECTION_HINTS = [
    "O servidor não está rodando!",
    "Execute: npm run start:dev",
]

PROVIDER_HINTS = [
    "Verifique se o servidor foi reiniciado após configurar o token",
    "Confirme que MERCADO_PAGO_ACCESS_TOKEN está no arquivo .env",
    "Verifique os logs do servidor para mais detalhes",
    "O token pode estar inválido ou expirado",
]

VERDICT_LABELS = {
    "approved": "pagamento aprovado",
    "declined": "pagamento recusado",
    "refunded": "pagamento reembolsado",
    "pending": "pagamento pendente (aguardando liquidação)",
    "unknown": "status desconhecido",
    "partial": "consulta de status falhou",
    "completed": "fluxo concluído",
}


def remediation_hints(report: RunReport) -> List[str]:
    hints: List[str] = []
    failure = report.failure
    if failure is not None:
        error = failure.error
        if error.kind == ErrorKind.CONNECTION:
            hints.extend(CONNECTION_HINTS)
        elif failure.name == STEP_PROCESS:
            hints.extend(PROVIDER_HINTS)
    for record in report.warnings:
        if record.name == STEP_STATUS:
            hints.append(
                "Consulte o status novamente mais tarde; a liquidação PIX é assíncrona no provedor"
            )
        if record.error.kind == ErrorKind.CONNECTION:
            hints.extend(h for h in CONNECTION_HINTS if h not in hints)
    return hints


def _describe_body(body) -> str:
    if isinstance(body, str):
        return body
    if isinstance(body, dict) and body:
        return ", ".join(f"{k}={v}" for k, v in body.items())
    return ""


class ConsoleReporter(RunObserver):
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def run_started(self, report: RunReport, steps: Sequence[Step]) -> None:
        self.console.print(
            Panel(Text("TESTE PIX - MERCADO PAGO", style="bold cyan", justify="center"), box=box.DOUBLE)
        )

    def step_started(self, index: int, total: int, step: Step) -> None:
        self.console.print(f"[bold][{index}/{total}][/bold] {escape(step.label or step.name)}...")

    def waiting(self, step: Step, seconds: float) -> None:
        self.console.print(f"[dim]Aguardando liquidação no provedor ({seconds:g}s)...[/dim]")

    def step_finished(self, index: int, total: int, record: StepRecord) -> None:
        if record.skipped:
            self.console.print(f"[dim]- [{index}/{total}] {escape(record.step.label or record.name)} (ignorado)[/dim]")
            return
        error = record.error
        if error is not None:
            style = "red" if record.step.fatal else "yellow"
            prefix = "✗ ERRO" if record.step.fatal else "⚠ AVISO"
            self.console.print(f"[{style}]{prefix} em {escape(record.name)}: {escape(error.message)}[/{style}]\n")
            return

        result = record.outcome.value
        if record.name == STEP_SERVER:
            self.console.print("[green]✓ Servidor OK[/green]")
            text = _describe_body(result.body)
            if text:
                self.console.print(f"  {escape(text)}")
        elif record.name == STEP_ORDER:
            self.console.print(f"[green]✓ Pedido criado: ID {escape(str(result.field('id')))}[/green]")
            descricao = result.field("descricao")
            if descricao:
                self.console.print(f"[dim]  Descrição: {escape(str(descricao))}[/dim]")
            valor = result.field("valor")
            if valor is not None:
                self.console.print(f"[dim]  Valor: R$ {escape(str(valor))}[/dim]")
        elif record.name == STEP_PAYMENT:
            self.console.print(f"[green]✓ Pagamento criado: ID {escape(str(result.field('id')))}[/green]")
        elif record.name == STEP_PROCESS:
            self.console.print("[green]✓ Pagamento processado![/green]")
            self.console.print(self._pix_panel(record))
        elif record.name == STEP_STATUS:
            suffix = f" (consultas: {record.attempts})" if record.attempts > 1 else ""
            self.console.print(f"[green]✓ Status: {escape(str(result.field('status')))}{suffix}[/green]")
        else:
            self.console.print(f"[green]✓ {escape(record.name)} ({result.status_code})[/green]")
        self.console.print()

    def _pix_panel(self, record: StepRecord) -> Panel:
        result = record.outcome.value
        table = Table(box=box.SIMPLE_HEAVY, show_header=False)
        table.add_column("Campo", style="bold")
        table.add_column("Valor", overflow="fold")
        table.add_row("ID Transação", escape(str(result.field("transacaoId") or "N/A")))
        table.add_row("Status", escape(str(result.field("status"))))
        qr_code = result.field("qrCode")
        if qr_code:
            table.add_row("📱 QR Code PIX", escape(str(qr_code)))
        if result.field("qrCodeBase64"):
            table.add_row("QR Code (imagem)", "base64 disponível")
        ticket_url = result.field("ticketUrl")
        if ticket_url:
            table.add_row("🔗 URL", escape(str(ticket_url)))
        footer = "💡 Copie o código acima e use em qualquer app de pagamento!" if qr_code else None
        return Panel(table, title="DADOS DO PAGAMENTO PIX", subtitle=footer)

    def run_finished(self, report: RunReport) -> None:
        if report.aborted:
            failure = report.failure
            body = Text("✗ ERRO NO TESTE\n", style="bold red")
            body.append(f"Mensagem: {failure.error.message if failure else 'desconhecida'}", style="red")
            self.console.print(Panel(body, title=f"Veredito: {report.verdict}", box=box.DOUBLE))
        else:
            title = "TESTE CONCLUÍDO COM SUCESSO!" if not report.warnings else "TESTE CONCLUÍDO COM AVISOS"
            style = "bold green" if not report.warnings else "bold yellow"
            body = Text(title + "\n", style=style)
            body.append(VERDICT_LABELS.get(report.verdict, report.verdict))
            self.console.print(Panel(body, title=f"Veredito: {report.verdict}", box=box.DOUBLE))

        hints = remediation_hints(report)
        if hints:
            table = Table(title="🔍 Diagnóstico")
            table.add_column("Sugestão")
            for hint in hints:
                table.add_row(escape(hint))
            self.console.print(table)
