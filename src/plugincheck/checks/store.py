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

"""Write-once, run-scoped store of check outcomes."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto

from ..errors import StoreWriteError
from ._types import ABSENT


class EntryState(Enum):
    """State of one check's entry in the store."""

    PENDING = auto()
    """The check has not run (yet)."""

    DONE = auto()
    """The check ran and produced a value, possibly absent."""

    FAILED = auto()
    """The check raised; its dependents observe it as absent."""


@dataclass(frozen=True, slots=True)
class Done:
    """The check completed. ``value`` is :data:`ABSENT` when it returned nothing."""

    value: object
    duration_ms: int = 0

    @property
    def state(self) -> EntryState:
        return EntryState.DONE


@dataclass(frozen=True, slots=True)
class Failed:
    """The check's behavior raised ``error``."""

    error: Exception
    duration_ms: int = 0

    @property
    def state(self) -> EntryState:
        return EntryState.FAILED


type Outcome = Done | Failed


@dataclass(slots=True)
class ResultStore:
    """Outcomes keyed by check name.

    Each entry is written at most once per run; a second write raises
    :class:`StoreWriteError`. Writes are serialized so the store can be
    shared by checks executing on worker threads.
    """

    _entries: dict[str, Outcome] = field(default_factory=lambda: dict[str, Outcome]())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, name: str, outcome: Outcome) -> None:
        """Store the outcome for ``name``.

        Raises:
            StoreWriteError: ``name`` already has an outcome.
        """
        with self._lock:
            if name in self._entries:
                raise StoreWriteError(name)
            self._entries[name] = outcome

    def get(self, name: str) -> Outcome | None:
        with self._lock:
            return self._entries.get(name)

    def state(self, name: str) -> EntryState:
        outcome = self.get(name)
        return EntryState.PENDING if outcome is None else outcome.state

    def value(self, name: str) -> object:
        """Return the stored value, or :data:`ABSENT` unless ``name`` is done."""
        outcome = self.get(name)
        if isinstance(outcome, Done):
            return outcome.value
        return ABSENT

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def snapshot(self) -> Mapping[str, Outcome]:
        """Return a copy of all recorded outcomes in completion order."""
        with self._lock:
            return dict(self._entries)

    def failures(self) -> Mapping[str, Failed]:
        """Return failed outcomes in completion order."""
        return {
            name: outcome
            for name, outcome in self.snapshot().items()
            if isinstance(outcome, Failed)
        }


__all__ = ["Done", "EntryState", "Failed", "Outcome", "ResultStore"]
