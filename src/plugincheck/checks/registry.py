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

"""Immutable check registry and the builder that accumulates it."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from functools import cached_property
from typing import Protocol, runtime_checkable

from ..errors import DuplicateCheckError
from ._types import FindingKind
from .descriptor import Behavior, Check, Requirement, check
from .resolver import resolve


@dataclass(frozen=True)
class CheckRegistry:
    """Immutable set of registered checks.

    The registry is static once built and may be shared across concurrent
    runs. Its resolved execution order is computed on first access and
    cached for the lifetime of the registry.

    Example::

        registry = CheckRegistry.of(metadata, archive, type_suffix)
        for item in registry.order:
            print(item.name)
    """

    _checks: tuple[Check, ...] = ()

    @staticmethod
    def of(*checks: Check) -> CheckRegistry:
        """Construct a registry from checks.

        Raises:
            DuplicateCheckError: Two checks share a name.
        """
        seen: set[str] = set()
        for item in checks:
            if item.name in seen:
                raise DuplicateCheckError(item.name)
            seen.add(item.name)
        return CheckRegistry(_checks=tuple(checks))

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._checks)

    def __iter__(self) -> Iterator[Check]:
        yield from self._checks

    def get(self, name: str) -> Check | None:
        """Return the check registered as ``name``, if any."""
        return self._index.get(name)

    def names(self) -> tuple[str, ...]:
        """Return check names in registration order."""
        return tuple(item.name for item in self._checks)

    @cached_property
    def _index(self) -> dict[str, Check]:
        return {item.name: item for item in self._checks}

    @cached_property
    def order(self) -> tuple[Check, ...]:
        """Checks in dependency order.

        Raises:
            UnknownDependencyError: A check requires an unregistered check.
            CircularDependencyError: The dependency relation has a cycle.
        """
        return resolve(self._checks)

    def describe(self) -> tuple[tuple[str, str, tuple[FindingKind, ...]], ...]:
        """Return ``(name, description, kinds)`` for every check, in order."""
        return tuple((item.name, item.description, item.kinds) for item in self.order)

    def merge(self, other: CheckRegistry) -> CheckRegistry:
        """Combine registries; ``other`` wins on name conflicts."""
        merged = {item.name: item for item in self._checks}
        merged.update({item.name: item for item in other._checks})
        return CheckRegistry(_checks=tuple(merged.values()))


@runtime_checkable
class CheckModule(Protocol):
    """A unit of configuration contributing checks to a builder.

    Example::

        class SecurityChecks:
            def configure(self, builder: RegistryBuilder) -> None:
                builder.register(virus_scan)
                builder.register(osv_scanner)
    """

    def configure(self, builder: RegistryBuilder) -> None: ...


class RegistryBuilder:
    """Accumulates checks and builds an immutable :class:`CheckRegistry`.

    Registering the same name twice replaces the earlier check unless
    ``strict`` is set.

    Example::

        builder = RegistryBuilder(strict=True)

        @builder.check("metadata", kinds=[MISSING_METADATA])
        def metadata(ctx, deps):
            ...

        builder.install(SecurityChecks())
        registry = builder.build()
    """

    __slots__ = ("_checks", "_strict")

    def __init__(self, *, strict: bool = False) -> None:
        self._checks: dict[str, Check] = {}
        self._strict = strict

    def register(self, *checks: Check) -> None:
        """Add checks to the builder.

        Raises:
            DuplicateCheckError: ``strict`` is set and a name is taken.
        """
        for item in checks:
            if self._strict and item.name in self._checks:
                raise DuplicateCheckError(item.name)
            self._checks[item.name] = item

    def check(
        self,
        name: str,
        *,
        requires: Iterable[Requirement] = (),
        kinds: Iterable[FindingKind] = (),
        description: str | None = None,
    ) -> Callable[[Behavior], Check]:
        """Decorator form of :func:`plugincheck.checks.check` that also registers."""

        def decorate(fn: Behavior) -> Check:
            created = check(
                name, requires=requires, kinds=kinds, description=description
            )(fn)
            self.register(created)
            return created

        return decorate

    def install(self, module: CheckModule) -> None:
        """Let ``module`` contribute its checks."""
        module.configure(self)

    def build(self) -> CheckRegistry:
        return CheckRegistry.of(*self._checks.values())

    @staticmethod
    def from_modules(*modules: CheckModule) -> CheckRegistry:
        """Build a registry from one or more modules."""
        builder = RegistryBuilder()
        for module in modules:
            builder.install(module)
        return builder.build()


__all__ = ["CheckModule", "CheckRegistry", "RegistryBuilder"]
