"""Executor sequencial de passos HTTP dependentes.

Cada ``Step`` pode ler o resultado de passos anteriores através do
``RunContext``. Um passo só executa quando todos os passos de que depende
terminaram com sucesso. Falha em passo ``fatal`` aborta a execução; falha em
passo não fatal gera um aviso e a execução continua.

O resultado real é o ``RunReport`` (lista ordenada de ``StepRecord`` mais o
veredito). A renderização em console fica em ``report.py`` e é plugada via
``RunObserver``.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .result import Err, ErrorKind, Ok, Outcome, StepResult
from .transport import HttpTransport

logger = logging.getLogger("pix_harness")

Sleep = Callable[[float], Awaitable[None]]


class RunState(str, Enum):
    NOT_STARTED = "NotStarted"
    CHECKING_SERVER = "CheckingServer"
    CREATING_ORDER = "CreatingOrder"
    CREATING_PAYMENT = "CreatingPayment"
    PROCESSING_PAYMENT = "ProcessingPayment"
    WAITING_FOR_SETTLEMENT = "WaitingForSettlement"
    POLLING_STATUS = "PollingStatus"
    DONE = "Done"
    ABORTED = "Aborted"


class RunContext:
    """Resultados dos passos bem-sucedidos, indexados pelo nome do passo."""

    def __init__(self) -> None:
        self._results: Dict[str, StepResult] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._results

    def __getitem__(self, name: str) -> StepResult:
        return self._results[name]

    def set(self, name: str, result: StepResult) -> None:
        self._results[name] = result

    def field(self, step: str, name: str, default: Any = None) -> Any:
        result = self._results.get(step)
        return result.field(name, default) if result else default

    def bodies(self) -> Dict[str, Any]:
        return {name: result.body for name, result in self._results.items()}


@dataclass(frozen=True)
class PollPolicy:
    max_attempts: int = 1
    backoff: float = 2.0
    is_final: Callable[[StepResult], bool] = lambda result: True


@dataclass(frozen=True)
class Step:
    name: str
    method: str
    path: str
    state: RunState
    body: Optional[Callable[[RunContext], dict]] = None
    fatal: bool = True
    requires: Tuple[str, ...] = ()
    expects: Tuple[str, ...] = ()
    wait_before: float = 0.0
    poll: Optional[PollPolicy] = None
    label: str = ""

    def render_path(self, context: RunContext) -> str:
        # "/pagamentos/{pagamento[id]}/status" -> "/pagamentos/99/status"
        return self.path.format(**context.bodies())


@dataclass
class StepRecord:
    step: Step
    outcome: Optional[Outcome] = None
    attempts: int = 0
    skipped: bool = False

    @property
    def name(self) -> str:
        return self.step.name

    @property
    def ok(self) -> bool:
        return self.outcome is not None and self.outcome.ok

    @property
    def error(self) -> Optional[Err]:
        return self.outcome if isinstance(self.outcome, Err) else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "step": self.name,
            "fatal": self.step.fatal,
            "attempts": self.attempts,
            "skipped": self.skipped,
            "ok": self.ok,
        }
        if isinstance(self.outcome, Ok):
            data["status_code"] = self.outcome.value.status_code
            data["body"] = self.outcome.value.body
        elif isinstance(self.outcome, Err):
            data["error"] = {
                "kind": self.outcome.kind.value,
                "message": self.outcome.message,
                "status_code": self.outcome.status_code,
                "body": self.outcome.body,
            }
        return data


@dataclass
class RunReport:
    run_id: str
    records: List[StepRecord] = field(default_factory=list)
    state: RunState = RunState.NOT_STARTED
    verdict: str = ""

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED

    @property
    def exit_code(self) -> int:
        return 1 if self.aborted else 0

    @property
    def failure(self) -> Optional[StepRecord]:
        """Primeiro passo fatal que falhou (o motivo do abort)."""
        for record in self.records:
            if record.error and record.step.fatal:
                return record
        return None

    @property
    def warnings(self) -> List[StepRecord]:
        return [r for r in self.records if r.error and not r.step.fatal]

    def record(self, name: str) -> Optional[StepRecord]:
        for item in self.records:
            if item.name == name:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "verdict": self.verdict,
            "exit_code": self.exit_code,
            "steps": [r.to_dict() for r in self.records],
        }


class RunObserver:
    """Ganchos de progresso; a implementação padrão não faz nada."""

    def run_started(self, report: RunReport, steps: Sequence[Step]) -> None:
        pass

    def step_started(self, index: int, total: int, step: Step) -> None:
        pass

    def waiting(self, step: Step, seconds: float) -> None:
        pass

    def step_finished(self, index: int, total: int, record: StepRecord) -> None:
        pass

    def run_finished(self, report: RunReport) -> None:
        pass


def default_verdict(report: RunReport) -> str:
    if report.aborted:
        return "aborted"
    if report.warnings:
        return "partial"
    return "completed"


class SequentialRunner:
    def __init__(
        self,
        transport: HttpTransport,
        observer: Optional[RunObserver] = None,
        sleep: Sleep = asyncio.sleep,
        verdict: Callable[[RunReport], str] = default_verdict,
        run_id: Optional[str] = None,
    ) -> None:
        self.transport = transport
        self.observer = observer or RunObserver()
        self.sleep = sleep
        self.verdict = verdict
        self.run_id = run_id or str(uuid.uuid4())
        self.context = RunContext()
        self._extra = {"cid": self.run_id}

    async def run(self, steps: Sequence[Step]) -> RunReport:
        # contexto novo a cada execução
        self.context = RunContext()
        report = RunReport(run_id=self.run_id)
        report.records = [StepRecord(step=step) for step in steps]
        total = len(steps)
        self.observer.run_started(report, steps)

        for index, record in enumerate(report.records, start=1):
            step = record.step
            if report.aborted or any(dep not in self.context for dep in step.requires):
                record.skipped = True
                logger.info("passo %s ignorado", step.name, extra=self._extra)
                self.observer.step_finished(index, total, record)
                continue

            if step.wait_before > 0:
                report.state = RunState.WAITING_FOR_SETTLEMENT
                self.observer.waiting(step, step.wait_before)
                await self.sleep(step.wait_before)

            report.state = step.state
            self.observer.step_started(index, total, step)
            await self._execute(step, record)
            self.observer.step_finished(index, total, record)

            if record.ok:
                self.context.set(step.name, record.outcome.value)
            elif step.fatal:
                logger.error(
                    "passo fatal %s falhou: %s", step.name, record.error.message, extra=self._extra
                )
                report.state = RunState.ABORTED
            else:
                logger.warning(
                    "passo %s falhou (não fatal): %s", step.name, record.error.message, extra=self._extra
                )

        if not report.aborted:
            report.state = RunState.DONE
        report.verdict = self.verdict(report)
        self.observer.run_finished(report)
        return report

    async def _execute(self, step: Step, record: StepRecord) -> None:
        policy = step.poll or PollPolicy()
        path = step.render_path(self.context)
        body = step.body(self.context) if step.body else None
        for attempt in range(1, max(1, policy.max_attempts) + 1):
            record.attempts = attempt
            outcome = await self.transport.request(step.method, path, body)
            if isinstance(outcome, Ok):
                outcome = self._check_expected_fields(step, outcome)
            record.outcome = outcome
            if not isinstance(outcome, Ok) or policy.is_final(outcome.value):
                return
            if attempt < policy.max_attempts:
                delay = policy.backoff * (2 ** (attempt - 1))
                logger.info(
                    "%s ainda não final, nova consulta em %.1fs (tentativa %s/%s)",
                    step.name,
                    delay,
                    attempt,
                    policy.max_attempts,
                    extra=self._extra,
                )
                await self.sleep(delay)

    @staticmethod
    def _check_expected_fields(step: Step, outcome: Ok) -> Outcome:
        missing = [name for name in step.expects if outcome.value.field(name) is None]
        if not missing:
            return outcome
        return Err(
            ErrorKind.HTTP_STATUS,
            f"resposta sem o campo {', '.join(missing)}",
            status_code=outcome.value.status_code,
            body=outcome.value.body,
        )
