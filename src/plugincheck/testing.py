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

"""Helpers for exercising one check in isolation.

Example::

    outcome = run_single(
        type_suffix,
        deps={"metadata": b'{"id": "acme-clock-panel", "type": "panel"}'},
    )
    assert outcome.findings == ()
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .checks._types import ABSENT, Finding
from .checks.context import RunContext
from .checks.descriptor import Check
from .checks.engine import invoke
from .checks.policy import SeverityPolicy
from .checks.store import Done, Failed
from .config import RunConfig


@dataclass(frozen=True, slots=True)
class SingleCheckOutcome:
    """What one isolated check invocation produced.

    ``value`` is :data:`~plugincheck.checks.ABSENT` when the check failed or
    returned nothing; ``error`` holds the exception it raised.
    """

    value: object
    findings: tuple[Finding, ...]
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def kinds(self) -> tuple[str, ...]:
        return tuple(finding.kind for finding in self.findings)


def run_single(
    check: Check,
    *,
    deps: Mapping[str, object] | None = None,
    config: RunConfig | None = None,
    policy: SeverityPolicy | None = None,
) -> SingleCheckOutcome:
    """Invoke ``check`` once with pre-recorded dependency results.

    ``deps`` maps dependency names to results. An :class:`Exception` value
    records that dependency as failed; a declared dependency missing from
    ``deps`` is observed as absent.
    """
    ctx = RunContext(
        config=config if config is not None else RunConfig(archive_dir=Path()),
        policy=policy if policy is not None else SeverityPolicy(),
    )
    for name, value in (deps or {}).items():
        if isinstance(value, Exception):
            ctx.store.record(name, Failed(value))
        else:
            ctx.store.record(name, Done(ABSENT if value is None else value))
    for name in check.dependency_names:
        if name not in ctx.store:
            ctx.store.record(name, Done(ABSENT))

    outcome = invoke(check, ctx)
    findings = ctx.finalize()
    if isinstance(outcome, Failed):
        return SingleCheckOutcome(value=ABSENT, findings=findings, error=outcome.error)
    return SingleCheckOutcome(value=outcome.value, findings=findings)


__all__ = ["SingleCheckOutcome", "run_single"]
