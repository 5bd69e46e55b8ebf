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

"""Check execution.

Every check runs at most once per :class:`RunContext`. A check is invoked
only after each of its declared dependencies has completed or failed. A
failing check is recorded and contained: its dependents observe it as
absent and unrelated checks are unaffected.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Mapping, Sequence

from ..errors import (
    CircularDependencyError,
    ConfigurationError,
    UnknownDependencyError,
)
from ..runtime.logging import StructuredLogger, get_logger
from ._types import ABSENT
from .context import RunContext
from .descriptor import Check
from .resolver import resolve
from .store import Done, Failed, Outcome

logger: StructuredLogger = get_logger(__name__, context={"component": "engine"})


def invoke(check: Check, ctx: RunContext) -> Outcome:
    """Run ``check`` once and record its outcome.

    Callers guarantee every dependency of ``check`` is already terminal.
    Returns the existing outcome when the check already ran in this run.
    """
    existing = ctx.store.get(check.name)
    if existing is not None:
        return existing

    start = time.monotonic()
    outcome: Outcome
    try:
        check_pass = ctx.open_pass(check)
    except Exception as error:
        outcome = Failed(error, duration_ms=_elapsed_ms(start))
        _log_failure(logger.bind(run_id=str(ctx.run_id), check=check.name), error)
        ctx.store.record(check.name, outcome)
        return outcome

    log = check_pass.logger
    log.debug("check.start", event="check.start")
    try:
        value = check.run(check_pass, check_pass.deps)
    except Exception as error:
        outcome = Failed(error, duration_ms=_elapsed_ms(start))
        _log_failure(log, error)
    else:
        outcome = Done(
            ABSENT if value is None else value, duration_ms=_elapsed_ms(start)
        )
        log.debug(
            "check.complete",
            event="check.complete",
            context={
                "duration_ms": outcome.duration_ms,
                "absent": outcome.value is ABSENT,
            },
        )
    finally:
        check_pass.close()

    ctx.store.record(check.name, outcome)
    return outcome


def ensure(
    target: Check | str, ctx: RunContext, checks: Mapping[str, Check]
) -> object:
    """Return the result of ``target``, running it and its dependencies first.

    Dependencies are resolved recursively through ``checks``. The result is
    the stored value, or :data:`ABSENT` when the check failed, returned
    nothing, or could not be scheduled because the run was cancelled.

    Raises:
        UnknownDependencyError: A dependency is missing from ``checks``.
        CircularDependencyError: ``checks`` were not resolved and contain a cycle.
        ConfigurationError: ``target`` names no check in ``checks``.
    """
    resolving: list[str] = []

    def visit(current: Check) -> None:
        if current.name in ctx.store:
            return
        if current.name in resolving:
            start = resolving.index(current.name)
            raise CircularDependencyError((*resolving[start:], current.name))

        resolving.append(current.name)
        try:
            for dep in current.dependencies:
                required = checks.get(dep.name)
                if required is None:
                    raise UnknownDependencyError(current.name, dep.name)
                visit(required)
        finally:
            _ = resolving.pop()

        if ctx.cancelled:
            _log_not_scheduled(ctx, current)
            return
        _ = invoke(current, ctx)

    root = checks.get(target) if isinstance(target, str) else target
    if root is None:
        raise ConfigurationError(f"Unknown check requested: {target}")
    visit(root)
    return ctx.store.value(root.name)


def run_checks(order: Sequence[Check], ctx: RunContext) -> None:
    """Run ``order`` sequentially.

    ``order`` should come from :func:`~plugincheck.checks.resolve`; any
    dependency that appears later is run first, so the dependency guarantee
    holds for arbitrary orderings too. Cancellation stops scheduling and
    leaves the remaining checks pending.
    """
    index = {item.name: item for item in order}
    for item in order:
        if ctx.cancelled:
            _log_not_scheduled(ctx, item)
            continue
        _ = ensure(item, ctx, index)


async def run_checks_async(
    order: Sequence[Check],
    ctx: RunContext,
    *,
    max_parallel: int | None = None,
) -> None:
    """Run ``order`` with independent checks executing concurrently.

    Each check waits for all of its dependencies to reach a terminal state,
    then runs in the default thread executor. At most ``max_parallel``
    checks execute at once (default: CPU count). Cancelling the awaiting
    task cancels the run's token, which in-flight checks observe.

    Raises:
        UnknownDependencyError: A dependency is missing from ``order``.
        CircularDependencyError: ``order`` was not resolved and has a cycle.
    """
    _ = resolve(order)
    index = {item.name: item for item in order}

    semaphore = asyncio.Semaphore(max_parallel or os.cpu_count() or 4)
    finished = {name: asyncio.Event() for name in index}
    loop = asyncio.get_running_loop()

    async def run_one(item: Check) -> None:
        try:
            for dep in item.dependency_names:
                _ = await finished[dep].wait()
            if item.name in ctx.store:
                return
            async with semaphore:
                if ctx.cancelled:
                    _log_not_scheduled(ctx, item)
                    return
                _ = await loop.run_in_executor(None, invoke, item, ctx)
        finally:
            finished[item.name].set()

    try:
        _ = await asyncio.gather(*(run_one(item) for item in order))
    except asyncio.CancelledError:
        ctx.cancel()
        raise


def _log_not_scheduled(ctx: RunContext, item: Check) -> None:
    logger.debug(
        "check.not_scheduled",
        event="check.not_scheduled",
        context={"run_id": str(ctx.run_id), "check": item.name},
    )


def _log_failure(log: StructuredLogger, error: Exception) -> None:
    log.warning(
        "Check failed",
        event="check.failed",
        context={"error_type": type(error).__qualname__, "error": str(error)},
        exc_info=True,
    )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


__all__ = ["ensure", "invoke", "run_checks", "run_checks_async"]
