from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


class ServiceState(enum.Enum):
    NOT_INSTALLED = "not installed"
    RUNNING = "running"
    STOPPED = "stopped"


class StepOutcome(enum.Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class Host:
    address: str
    group: str
    user: str | None = None
    port: int | None = None


@dataclass
class CommandResult:
    argv: list[str]
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True)
class TemplateVars:
    domain: str
    target_server: str
    dns_server_ip: str
    hostname: str
    server_ip: str
    generated_at: datetime


@dataclass
class Step:
    name: str
    outcome: StepOutcome
    reason: str = ""


@dataclass
class OperationResult:
    operation: str
    steps: list[Step] = field(default_factory=list)
    aborted: bool = False

    def ok(self, name: str) -> None:
        self.steps.append(Step(name, StepOutcome.OK))

    def skipped(self, name: str, reason: str = "") -> None:
        self.steps.append(Step(name, StepOutcome.SKIPPED, reason))

    def failed(self, name: str, reason: str = "") -> None:
        self.steps.append(Step(name, StepOutcome.FAILED, reason))

    def extend(self, other: OperationResult) -> None:
        self.steps.extend(other.steps)
        self.aborted = self.aborted or other.aborted

    @property
    def failures(self) -> list[Step]:
        return [s for s in self.steps if s.outcome is StepOutcome.FAILED]

    def exit_code(self, strict: bool = False) -> int:
        """Aborted operations always exit 1; other failures only in strict mode."""
        if self.aborted:
            return 1
        if strict and self.failures:
            return 1
        return 0
