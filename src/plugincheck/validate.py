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

"""Entry points for running a registry against one plugin.

Example::

    registry = RegistryBuilder.from_modules(MetadataChecks(), SecurityChecks())
    report = run_validation(
        registry,
        RunConfig(archive_dir=extracted, plugin_id="grafana-clock-panel"),
        settings=load_settings("plugincheck.yaml"),
    )
    for finding in report.findings:
        print(finding.format())
"""

from __future__ import annotations

import asyncio
import time

from .checks._types import Finding
from .checks.context import RunContext
from .checks.engine import run_checks, run_checks_async
from .checks.policy import SeverityPolicy
from .checks.registry import CheckRegistry
from .checks.report import ValidationReport
from .checks.resolver import resolve_subset
from .config import RunConfig, ValidatorSettings
from .runtime.cancellation import CancellationToken
from .runtime.logging import StructuredLogger, get_logger

logger: StructuredLogger = get_logger(__name__, context={"component": "validate"})


def run_validation(  # noqa: PLR0913
    registry: CheckRegistry,
    config: RunConfig,
    *,
    settings: ValidatorSettings | None = None,
    policy: SeverityPolicy | None = None,
    token: CancellationToken | None = None,
    concurrent: bool = False,
    max_parallel: int | None = None,
) -> ValidationReport:
    """Run every check in ``registry`` once against ``config``.

    Args:
        registry: Checks to run. Resolution errors surface before any check
            executes.
        config: Inputs of this run. ``config.only`` restricts the run to the
            named checks and their dependencies.
        settings: Operator settings used to seed the run's severity policy.
            Ignored when ``policy`` is given.
        policy: Seed policy for this run. The run works on a copy, so
            overrides made by checks never reach the caller's policy.
        token: Cancellation token observed by the engine and by checks.
        concurrent: Run independent checks in parallel worker threads.
        max_parallel: Worker limit for concurrent runs.

    Returns:
        The run's findings in emission order plus its execution record.

    Raises:
        ConfigurationError: The registry cannot be resolved or ``only``
            names an unknown check.
    """
    order = registry.order
    if config.only is not None:
        order = resolve_subset(order, config.only)

    if policy is None:
        policy = (
            SeverityPolicy.from_settings(registry, settings, plugin_id=config.plugin_id)
            if settings is not None
            else SeverityPolicy()
        )
    else:
        policy = policy.copy()

    ctx = RunContext(
        config=config,
        policy=policy,
        token=token if token is not None else CancellationToken(),
    )
    log = logger.bind(**ctx.to_log_context())
    log.info(
        "Validation run started",
        event="run.start",
        context={"check_count": len(order), "concurrent": concurrent},
    )

    start = time.monotonic()
    try:
        if concurrent:
            asyncio.run(run_checks_async(order, ctx, max_parallel=max_parallel))
        else:
            run_checks(order, ctx)
    finally:
        findings = ctx.finalize()

    report = ValidationReport.from_context(
        ctx,
        order,
        findings=findings,
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    log.info(
        "Validation run complete",
        event="run.complete",
        context={
            "finding_count": len(report.findings),
            "error_count": report.error_count,
            "failed_checks": [failure.check for failure in report.failures],
            "not_run": list(report.not_run),
            "cancelled": report.cancelled,
            "duration_ms": report.duration_ms,
        },
    )
    return report


def validate(
    registry: CheckRegistry,
    config: RunConfig,
    *,
    settings: ValidatorSettings | None = None,
    policy: SeverityPolicy | None = None,
    token: CancellationToken | None = None,
) -> tuple[Finding, ...]:
    """Run ``registry`` sequentially and return its findings in emission order."""
    return run_validation(
        registry, config, settings=settings, policy=policy, token=token
    ).findings


__all__ = ["run_validation", "validate"]
