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

"""Finding collection for one validation run."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..errors import EmissionError
from ..runtime.logging import StructuredLogger, get_logger
from ._types import Finding, Severity
from .descriptor import Check
from .policy import SeverityPolicy

logger: StructuredLogger = get_logger(__name__, context={"component": "diagnostics"})


@dataclass(slots=True)
class FindingsSink:
    """Append-only, ordered sink of findings.

    Severity is resolved through the run's policy when a finding is
    recorded, never retroactively. Findings are neither deduplicated nor
    sorted; emission order is the output order.
    """

    policy: SeverityPolicy
    _findings: list[Finding] = field(default_factory=lambda: list[Finding]())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _closed: bool = False

    def record(
        self,
        check: Check,
        kind: str,
        title: str,
        detail: str = "",
        *,
        context: str | None = None,
        passed: bool = False,
    ) -> Finding | None:
        """Record a finding of ``kind`` attributed to ``check``.

        ``passed`` marks a clean-pass announcement, which is recorded at
        ``info`` severity (or the run's forced severity).

        Returns:
            The recorded finding, or None when the kind is disabled.

        Raises:
            EmissionError: ``check`` does not declare ``kind`` or the sink
                was already finalized.
        """
        declared = check.kind(kind)
        if declared is None:
            raise EmissionError(
                f"Check {check.name!r} does not declare finding kind {kind!r}"
            )

        if not self.policy.is_enabled(check.name, kind):
            logger.debug(
                "finding.suppressed",
                event="finding.suppressed",
                context={"check": check.name, "kind": kind},
            )
            return None

        if passed:
            severity = self.policy.forced or Severity.INFO
        else:
            severity = self.policy.severity_for(check.name, declared)

        finding = Finding(
            source_check=check.name,
            kind=kind,
            severity=severity,
            title=title,
            detail=detail,
            context=context,
        )
        with self._lock:
            if self._closed:
                raise EmissionError("Findings were already finalized for this run")
            self._findings.append(finding)

        logger.debug(
            "finding.recorded",
            event="finding.recorded",
            context={"check": check.name, "kind": kind, "severity": severity.value},
        )
        return finding

    def findings(self) -> tuple[Finding, ...]:
        with self._lock:
            return tuple(self._findings)

    def findings_of(self, check: str) -> tuple[Finding, ...]:
        """Return findings emitted so far by ``check``."""
        with self._lock:
            return tuple(f for f in self._findings if f.source_check == check)

    def finalize(self) -> tuple[Finding, ...]:
        """Close the sink and return every finding in emission order."""
        with self._lock:
            self._closed = True
            return tuple(self._findings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._findings)


__all__ = ["FindingsSink"]
