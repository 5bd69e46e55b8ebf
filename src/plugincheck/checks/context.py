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

"""Run-scoped state and the per-check view handed to behaviors."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, overload, override
from uuid import UUID, uuid4

from ..errors import EmissionError, UndeclaredDependencyError
from ..runtime.cancellation import CancellationToken
from ..runtime.logging import StructuredLogger, get_logger
from ._types import ABSENT, Absent, Finding, FindingKind, Severity
from .descriptor import Check
from .diagnostics import FindingsSink
from .policy import SeverityPolicy
from .store import EntryState, ResultStore

if TYPE_CHECKING:
    from ..config import RunConfig

logger: StructuredLogger = get_logger(__name__, context={"component": "context"})


@dataclass(slots=True)
class RunContext:
    """Mutable state of exactly one validation run.

    A context owns the result store, the findings sink, the severity policy
    and the cancellation token of its run. Never share one between runs;
    create a fresh context per validation.

    Example::

        ctx = RunContext(config=RunConfig(archive_dir=extracted))
        run_checks(registry.order, ctx)
        findings = ctx.finalize()
    """

    config: RunConfig
    policy: SeverityPolicy = field(default_factory=SeverityPolicy)
    token: CancellationToken = field(default_factory=CancellationToken)
    run_id: UUID = field(default_factory=uuid4)
    store: ResultStore = field(default_factory=ResultStore)
    sink: FindingsSink = field(init=False)

    def __post_init__(self) -> None:
        self.sink = FindingsSink(self.policy)

    @property
    def cancelled(self) -> bool:
        return self.token.is_cancelled()

    def cancel(self) -> None:
        """Stop scheduling further checks; recorded outcomes are kept."""
        self.token.cancel()
        logger.warning(
            "Validation run cancelled",
            event="run.cancelled",
            context={"run_id": str(self.run_id), "completed": len(self.store)},
        )

    def open_pass(self, check: Check) -> CheckPass:
        """Create the execution window for ``check``.

        Dependency results are captured now; the engine calls this only once
        every declared dependency has reached a terminal state.
        """
        return CheckPass(
            check=check,
            _run=self,
            deps=DependencyResults.collect(check, self.store),
            logger=logger.bind(run_id=str(self.run_id), check=check.name),
        )

    def finalize(self) -> tuple[Finding, ...]:
        """Drain the findings sink; no check may emit afterwards."""
        return self.sink.finalize()

    def to_log_context(self) -> dict[str, str | None]:
        return {"run_id": str(self.run_id), **self.config.to_log_context()}


class DependencyResults(Mapping[str, object]):
    """Results of a check's declared dependencies.

    Every declared dependency maps to its stored value or :data:`ABSENT`
    (failed, returned nothing, or returned the wrong type). Looking up a
    check that was not declared raises :class:`UndeclaredDependencyError`.
    """

    __slots__ = ("_check", "_states", "_values")

    def __init__(
        self,
        check: str,
        values: Mapping[str, object],
        states: Mapping[str, EntryState] | None = None,
    ) -> None:
        self._check = check
        self._values = dict(values)
        self._states = dict(states or {})

    @classmethod
    def collect(cls, check: Check, store: ResultStore) -> DependencyResults:
        values: dict[str, object] = {}
        states: dict[str, EntryState] = {}
        for dep in check.dependencies:
            value = store.value(dep.name)
            if value is not ABSENT and not dep.accepts(value):
                logger.debug(
                    "dependency.type_mismatch",
                    event="dependency.type_mismatch",
                    context={
                        "check": check.name,
                        "dependency": dep.name,
                        "type": type(value).__qualname__,
                    },
                )
                value = ABSENT
            values[dep.name] = value
            states[dep.name] = store.state(dep.name)
        return cls(check.name, values, states)

    @override
    def __getitem__(self, name: str) -> object:
        try:
            return self._values[name]
        except KeyError:
            raise UndeclaredDependencyError(self._check, name) from None

    @override
    def __contains__(self, name: object) -> bool:
        return name in self._values

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    @override
    def __len__(self) -> int:
        return len(self._values)

    @overload
    def value[T](self, name: str, expected: type[T]) -> T | Absent: ...

    @overload
    def value(self, name: str) -> object: ...

    def value(self, name: str, expected: type[object] = object) -> object:
        """Return the result of ``name`` narrowed to ``expected``.

        A result of another type is returned as :data:`ABSENT`.
        """
        result = self[name]
        if result is ABSENT or isinstance(result, expected):
            return result
        return ABSENT

    def state(self, name: str) -> EntryState:
        """Return whether dependency ``name`` completed or failed."""
        if name not in self._values:
            raise UndeclaredDependencyError(self._check, name)
        return self._states.get(name, EntryState.PENDING)

    def failed(self, name: str) -> bool:
        return self.state(name) is EntryState.FAILED

    def available(self, name: str) -> bool:
        return self[name] is not ABSENT


@dataclass(slots=True)
class CheckPass:
    """A check's window onto its run, valid only while its behavior executes.

    The pass is the only route to the emission primitive. Once the engine
    closes it, :meth:`emit` raises :class:`EmissionError`.
    """

    check: Check
    _run: RunContext = field(repr=False)
    deps: DependencyResults = field(repr=False)
    logger: StructuredLogger = field(repr=False)
    _open: bool = True

    @property
    def config(self) -> RunConfig:
        return self._run.config

    @property
    def token(self) -> CancellationToken:
        return self._run.token

    @property
    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    def emit(
        self,
        kind: str,
        title: str,
        detail: str = "",
        *,
        context: str | None = None,
    ) -> Finding | None:
        """Record a finding of ``kind`` attributed to this check.

        Returns:
            The finding, or None when ``kind`` is disabled for this run.
        """
        self._ensure_open()
        return self._run.sink.record(
            self.check, kind, title, detail, context=context
        )

    def should_announce(self, kind: str) -> bool:
        """Return True when a clean pass of ``kind`` should be reported."""
        return self._run.policy.announces(self.check.name, self._declared(kind))

    def passed(
        self,
        kind: str,
        title: str,
        detail: str = "",
        *,
        context: str | None = None,
    ) -> Finding | None:
        """Announce that ``kind`` was checked and found clean.

        Records an ``info`` finding only when announcements are enabled for
        ``kind`` in this run; otherwise returns None.
        """
        self._ensure_open()
        if not self.should_announce(kind):
            return None
        return self._run.sink.record(
            self.check, kind, title, detail, context=context, passed=True
        )

    def override_severity(self, kind: str, severity: Severity | str) -> None:
        """Change the severity of this check's ``kind`` for the rest of the run."""
        self._ensure_open()
        _ = self._declared(kind)
        self._run.policy.override(self.check.name, kind, Severity.parse(severity))

    def set_announce(self, kind: str, enabled: bool) -> None:
        """Toggle clean-pass announcements of ``kind`` for the rest of the run."""
        self._ensure_open()
        _ = self._declared(kind)
        self._run.policy.set_announce(self.check.name, kind, enabled)

    def findings_of(self, dependency: str) -> tuple[Finding, ...]:
        """Return findings already emitted by a declared dependency."""
        if dependency not in self.deps:
            raise UndeclaredDependencyError(self.check.name, dependency)
        return self._run.sink.findings_of(dependency)

    def has_errors(self, dependency: str) -> bool:
        """Return True if a declared dependency emitted an error finding."""
        return any(
            finding.severity is Severity.ERROR
            for finding in self.findings_of(dependency)
        )

    def _declared(self, kind: str) -> FindingKind:
        declared = self.check.kind(kind)
        if declared is None:
            raise EmissionError(
                f"Check {self.check.name!r} does not declare finding kind {kind!r}"
            )
        return declared

    def _ensure_open(self) -> None:
        if not self._open:
            raise EmissionError(
                f"Check {self.check.name!r} emitted outside its execution window"
            )


__all__ = ["CheckPass", "DependencyResults", "RunContext"]
