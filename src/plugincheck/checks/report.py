# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Outcome of a completed validation run."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

from ._types import Finding, Severity
from .store import Done, Failed

if TYPE_CHECKING:
    from .context import RunContext
    from .descriptor import Check


@dataclass(frozen=True, slots=True)
class CheckFailure:
    """Why a check did not complete.

    Failures are diagnostics for operators, not validation findings.
    """

    check: str
    error_type: str
    message: str
    duration_ms: int = 0
    error: Exception | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_outcome(cls, check: str, outcome: Failed) -> CheckFailure:
        return cls(
            check=check,
            error_type=type(outcome.error).__qualname__,
            message=str(outcome.error),
            duration_ms=outcome.duration_ms,
            error=outcome.error,
        )


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Findings and execution record of one validation run.

    Attributes:
        run_id: Identifier of the run.
        findings: Every finding in emission order.
        failures: Checks that raised, in completion order.
        completed: Checks that ran to completion, in completion order.
        not_run: Checks never scheduled because the run was cancelled.
        cancelled: Whether the run was cancelled.
        duration_ms: Wall time of the run.
    """

    run_id: UUID
    findings: tuple[Finding, ...]
    failures: tuple[CheckFailure, ...] = ()
    completed: tuple[str, ...] = ()
    not_run: tuple[str, ...] = ()
    cancelled: bool = False
    duration_ms: int = 0

    @classmethod
    def from_context(
        cls,
        ctx: RunContext,
        order: Sequence[Check],
        *,
        findings: tuple[Finding, ...],
        duration_ms: int = 0,
    ) -> ValidationReport:
        outcomes = ctx.store.snapshot()
        return cls(
            run_id=ctx.run_id,
            findings=findings,
            failures=tuple(
                CheckFailure.from_outcome(name, outcome)
                for name, outcome in outcomes.items()
                if isinstance(outcome, Failed)
            ),
            completed=tuple(
                name for name, outcome in outcomes.items() if isinstance(outcome, Done)
            ),
            not_run=tuple(item.name for item in order if item.name not in outcomes),
            cancelled=ctx.cancelled,
            duration_ms=duration_ms,
        )

    @property
    def has_errors(self) -> bool:
        return any(f.severity is Severity.ERROR for f in self.findings)

    @property
    def error_count(self) -> int:
        return sum(1 for f in self.findings if f.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for f in self.findings if f.severity is Severity.WARNING)

    def findings_for(self, check: str) -> tuple[Finding, ...]:
        return tuple(f for f in self.findings if f.source_check == check)

    def failure_for(self, check: str) -> CheckFailure | None:
        for failure in self.failures:
            if failure.check == check:
                return failure
        return None

    def grouped(self) -> Mapping[str, tuple[Finding, ...]]:
        """Group findings by emitting check, in first-emission order."""
        groups: dict[str, list[Finding]] = {}
        for finding in self.findings:
            groups.setdefault(finding.source_check, []).append(finding)
        return {name: tuple(items) for name, items in groups.items()}


__all__ = ["CheckFailure", "ValidationReport"]
