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

"""Dependency resolution for registered checks."""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from enum import Enum, auto

from ..errors import (
    CircularDependencyError,
    ConfigurationError,
    DuplicateCheckError,
    UnknownDependencyError,
)
from ..runtime.logging import StructuredLogger, get_logger
from .descriptor import Check

logger: StructuredLogger = get_logger(__name__, context={"component": "resolver"})


class _Mark(Enum):
    IN_PROGRESS = auto()
    DONE = auto()


def resolve(checks: Iterable[Check]) -> tuple[Check, ...]:
    """Order ``checks`` so every check follows all of its dependencies.

    Depth-first postorder over the registration order; dependencies are
    visited in declaration order, so the result is deterministic for a given
    registration sequence.

    Raises:
        DuplicateCheckError: Two checks share a name.
        UnknownDependencyError: A check requires an unregistered check.
        CircularDependencyError: The dependency relation has a cycle.
    """
    index: dict[str, Check] = {}
    for item in checks:
        if item.name in index:
            raise DuplicateCheckError(item.name)
        index[item.name] = item

    marks: dict[str, _Mark] = {}
    path: list[str] = []
    order: list[Check] = []

    def visit(current: Check) -> None:
        mark = marks.get(current.name)
        if mark is _Mark.DONE:
            return
        if mark is _Mark.IN_PROGRESS:
            start = path.index(current.name)
            raise CircularDependencyError((*path[start:], current.name))

        marks[current.name] = _Mark.IN_PROGRESS
        path.append(current.name)
        for dep in current.dependencies:
            target = index.get(dep.name)
            if target is None:
                raise UnknownDependencyError(current.name, dep.name)
            visit(target)
        _ = path.pop()
        marks[current.name] = _Mark.DONE
        order.append(current)

    for item in index.values():
        visit(item)

    logger.debug(
        "registry.resolve.complete",
        event="registry.resolve.complete",
        context={"check_count": len(order)},
    )
    return tuple(order)


def resolve_subset(
    order: Sequence[Check], targets: Collection[str]
) -> tuple[Check, ...]:
    """Restrict a resolved ``order`` to ``targets`` and their dependencies.

    The relative order of ``order`` is preserved.

    Raises:
        ConfigurationError: A target names no check in ``order``.
    """
    index = {item.name: item for item in order}
    missing = sorted(name for name in targets if name not in index)
    if missing:
        raise ConfigurationError(f"Unknown checks requested: {', '.join(missing)}")

    needed: set[str] = set()
    pending = list(targets)
    while pending:
        name = pending.pop()
        if name in needed:
            continue
        needed.add(name)
        pending.extend(index[name].dependency_names)

    return tuple(item for item in order if item.name in needed)


__all__ = ["resolve", "resolve_subset"]
