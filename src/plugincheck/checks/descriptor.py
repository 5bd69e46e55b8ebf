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

"""Static check declarations."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ._types import FindingKind

if TYPE_CHECKING:
    from .context import CheckPass, DependencyResults

type Behavior = Callable[[CheckPass, DependencyResults], object]
"""Check body: receives its pass and declared dependency results.

The return value is stored for dependents; ``None`` is stored as absent.
Raising any exception records the check as failed.
"""

type Requirement = str | Check | Dependency
"""Ways to name a dependency: by check name, by check, or fully declared."""


@dataclass(frozen=True, slots=True)
class Dependency:
    """A declared dependency on another check's result.

    Attributes:
        name: Name of the required check.
        expects: Type (or tuple of types) the result must have. A result of
            any other type is observed as absent. Parameterized generics and
            protocols that are not runtime-checkable are rejected.
    """

    name: str
    expects: type | tuple[type, ...] = object

    def __post_init__(self) -> None:
        try:
            _ = isinstance(None, self.expects)
        except TypeError as error:
            raise ConfigurationError(
                f"Dependency on {self.name!r} expects {self.expects!r}, "
                + "which cannot be used for an instance check"
            ) from error

    def accepts(self, value: object) -> bool:
        """Return True when ``value`` has the expected shape."""
        return isinstance(value, self.expects)


@dataclass(frozen=True, slots=True)
class Check:
    """Static declaration of one validation unit.

    Checks are immutable once constructed and may be shared by any number of
    concurrent runs. Everything a run learns about a check (its result, the
    severity its findings end up with) lives in that run's context.

    Example::

        metadata = Check(
            name="metadata",
            run=read_plugin_json,
            kinds=(FindingKind("missing-metadata", Severity.ERROR),),
        )
        type_suffix = Check(
            name="typesuffix",
            run=check_type_suffix,
            requires=(Dependency("metadata", bytes),),
            kinds=(FindingKind("plugin-type-suffix", Severity.ERROR),),
        )

    Attributes:
        name: Stable, unique identity of the check.
        run: The check's behavior.
        requires: Checks whose results this check consumes. Duplicates
            collapse onto the first declaration.
        kinds: Finding kinds the check may emit.
        description: Human-readable summary of what the check verifies.
    """

    name: str
    run: Behavior
    requires: tuple[Requirement, ...] = ()
    kinds: tuple[FindingKind, ...] = ()
    description: str = ""
    dependencies: tuple[Dependency, ...] = field(init=False, repr=False)
    """Normalized, de-duplicated form of ``requires``."""

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Check name must be a non-empty string")
        object.__setattr__(self, "requires", tuple(self.requires))
        object.__setattr__(self, "kinds", tuple(self.kinds))
        object.__setattr__(self, "dependencies", _normalize(self.requires))

        seen: set[str] = set()
        for kind in self.kinds:
            if kind.name in seen:
                raise ConfigurationError(
                    f"Check {self.name!r} declares finding kind {kind.name!r} twice"
                )
            seen.add(kind.name)

    @property
    def dependency_names(self) -> tuple[str, ...]:
        return tuple(dep.name for dep in self.dependencies)

    def dependency(self, name: str) -> Dependency | None:
        """Return the declared dependency called ``name``, if any."""
        for dep in self.dependencies:
            if dep.name == name:
                return dep
        return None

    def kind(self, name: str) -> FindingKind | None:
        """Return the declared finding kind called ``name``, if any."""
        for kind in self.kinds:
            if kind.name == name:
                return kind
        return None


def check(
    name: str,
    *,
    requires: Iterable[Requirement] = (),
    kinds: Iterable[FindingKind] = (),
    description: str | None = None,
) -> Callable[[Behavior], Check]:
    """Decorate a behavior function into a :class:`Check`.

    The function's docstring becomes the description unless one is given.

    Example::

        @check("typesuffix", requires=[metadata], kinds=[PLUGIN_TYPE_SUFFIX])
        def type_suffix(ctx: CheckPass, deps: DependencyResults) -> None:
            \"\"\"Plugin id ends with the plugin type.\"\"\"
            ...
    """

    def decorate(fn: Behavior) -> Check:
        doc = description if description is not None else (fn.__doc__ or "")
        return Check(
            name=name,
            run=fn,
            requires=tuple(requires),
            kinds=tuple(kinds),
            description=doc.strip(),
        )

    return decorate


def _normalize(requires: Iterable[Requirement]) -> tuple[Dependency, ...]:
    deps: dict[str, Dependency] = {}
    for item in requires:
        if isinstance(item, Dependency):
            dep = item
        elif isinstance(item, Check):
            dep = Dependency(item.name)
        elif isinstance(item, str):
            dep = Dependency(item)
        else:
            raise ConfigurationError(f"Unsupported dependency reference: {item!r}")
        _ = deps.setdefault(dep.name, dep)
    return tuple(deps.values())


__all__ = ["Behavior", "Check", "Dependency", "Requirement", "check"]
