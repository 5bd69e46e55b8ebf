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

"""Core value types shared by checks, the engine and the aggregator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, final, override

from ..errors import SettingsError


class Severity(Enum):
    """Severity of a finding, ordered from least to most severe.

    ``INFO`` is also used for "checked and clean" announcements.
    """

    INFO = "info"
    RECOMMENDATION = "recommendation"
    WARNING = "warning"
    ERROR = "error"
    SUSPECTED = "suspected"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        """Return the severity named by ``value``.

        Accepts enum values, member names in any case, and the aliases
        ``ok`` (info) and ``suspected-critical`` (suspected).

        Raises:
            SettingsError: ``value`` names no severity.
        """
        if isinstance(value, Severity):
            return value
        key = value.strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise SettingsError(f"Unknown severity: {value!r}") from None


_RANKS: Final[dict[Severity, int]] = {
    severity: rank for rank, severity in enumerate(Severity)
}
_ALIASES: Final[dict[str, str]] = {
    "ok": "info",
    "informational": "info",
    "suspected-critical": "suspected",
    "suspected_critical": "suspected",
}


@dataclass(frozen=True, slots=True)
class FindingKind:
    """A named category of finding a check may raise.

    Attributes:
        name: Identifier unique within the owning check.
        severity: Declared default severity. ``None`` defers to settings,
            falling back to ``warning``.
        always_announce: Emit a "passed" finding when no violation is found.
        description: Optional human-readable explanation of the rule.
    """

    name: str
    severity: Severity | None = Severity.WARNING
    always_announce: bool = False
    description: str = ""


@dataclass(frozen=True, slots=True)
class Finding:
    """One severity-tagged observation emitted by a check during a run.

    Attributes:
        source_check: Name of the check that emitted the finding.
        kind: Name of the finding kind raised.
        severity: Effective severity after the run's policy was applied.
        title: Short human-readable summary.
        detail: Longer free-text explanation.
        context: Optional prefix locating the finding (a file, a field).
    """

    source_check: str
    kind: str
    severity: Severity
    title: str
    detail: str = ""
    context: str | None = None

    def format(self, *, show_check: bool = True) -> str:
        """Format the finding for one-line display."""
        parts: list[str] = []
        if show_check:
            parts.append(f"[{self.source_check}]")
        parts.append(f"{self.severity.value}:")
        if self.context:
            parts.append(f"{self.context}:")
        parts.append(self.title)
        result = " ".join(parts)
        if self.detail:
            result = f"{result}\n  detail: {self.detail}"
        return result


@final
class Absent:
    """Marker for a dependency that produced no usable result.

    A dependency is absent when it failed, returned nothing, was never run
    or returned a value of the wrong shape. ``ABSENT`` is falsy so checks
    can write ``if not metadata: return None``.
    """

    _instance: Absent | None = None

    def __new__(cls) -> Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    @override
    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Final = Absent()


def is_absent(value: object) -> bool:
    """Return True when ``value`` is the :data:`ABSENT` marker."""
    return value is ABSENT


__all__ = [
    "ABSENT",
    "Absent",
    "Finding",
    "FindingKind",
    "Severity",
    "is_absent",
]
