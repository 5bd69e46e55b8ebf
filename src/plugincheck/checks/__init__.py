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

"""Dependency-ordered check scheduling.

Checks declare the checks whose results they consume and the finding kinds
they may raise. The registry resolves a dependency order once; every run
gets its own context holding results, findings and severity policy.

Quick Start::

    from plugincheck.checks import (
        CheckRegistry, FindingKind, RunContext, Severity, check, run_checks,
    )
    from plugincheck.config import RunConfig

    MISSING = FindingKind("missing-metadata", Severity.ERROR)

    @check("metadata", kinds=[MISSING])
    def metadata(ctx, deps):
        path = ctx.config.archive_dir / "plugin.json"
        if not path.exists():
            ctx.emit("missing-metadata", "missing plugin.json")
            return None
        return path.read_bytes()

    registry = CheckRegistry.of(metadata)
    ctx = RunContext(config=RunConfig(archive_dir=extracted))
    run_checks(registry.order, ctx)
    findings = ctx.finalize()
"""

from __future__ import annotations

from ._types import ABSENT, Absent, Finding, FindingKind, Severity, is_absent
from .context import CheckPass, DependencyResults, RunContext
from .descriptor import Behavior, Check, Dependency, Requirement, check
from .diagnostics import FindingsSink
from .engine import ensure, invoke, run_checks, run_checks_async
from .policy import SeverityPolicy
from .registry import CheckModule, CheckRegistry, RegistryBuilder
from .report import CheckFailure, ValidationReport
from .resolver import resolve, resolve_subset
from .store import Done, EntryState, Failed, Outcome, ResultStore

__all__ = [
    "ABSENT",
    "Absent",
    "Behavior",
    "Check",
    "CheckFailure",
    "CheckModule",
    "CheckPass",
    "CheckRegistry",
    "Dependency",
    "DependencyResults",
    "Done",
    "EntryState",
    "Failed",
    "Finding",
    "FindingKind",
    "FindingsSink",
    "Outcome",
    "RegistryBuilder",
    "Requirement",
    "ResultStore",
    "RunContext",
    "Severity",
    "SeverityPolicy",
    "ValidationReport",
    "check",
    "ensure",
    "invoke",
    "is_absent",
    "resolve",
    "resolve_subset",
    "run_checks",
    "run_checks_async",
]
