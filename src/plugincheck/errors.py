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

"""Base exception hierarchy for :mod:`plugincheck`."""

from __future__ import annotations


class PluginCheckError(Exception):
    """Base class for all plugincheck exceptions.

    Callers can catch every library-specific error with a single handler
    while standard Python exceptions propagate normally.

    Example::

        try:
            findings = validate(registry, config)
        except PluginCheckError as e:
            logger.error("Validation could not start: %s", e)
    """


class ConfigurationError(PluginCheckError, ValueError):
    """The registered checks or the settings cannot form a valid run.

    Configuration errors are raised before any check executes. They are the
    only errors that abort a validation run.
    """


class CircularDependencyError(ConfigurationError):
    """Checks depend on each other in a loop.

    The ``cycle`` attribute lists the check names along the loop; the first
    and last entries are the same check.
    """

    def __init__(self, cycle: tuple[str, ...]) -> None:
        self.cycle = cycle
        super().__init__(f"Circular dependency: {' -> '.join(cycle)}")


class UnknownDependencyError(ConfigurationError, LookupError):
    """A check requires a check that is not registered."""

    def __init__(self, check: str, dependency: str) -> None:
        self.check = check
        self.dependency = dependency
        super().__init__(f"Check {check!r} requires unknown check {dependency!r}")


class DuplicateCheckError(ConfigurationError):
    """The same check name was registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate check: {name}")


class SettingsError(ConfigurationError):
    """Validator settings are malformed.

    Raised for unreadable settings files, non-mapping documents and unknown
    severity names.
    """


class CheckExecutionError(PluginCheckError, RuntimeError):
    """A check misused the run context while executing.

    These errors are raised into the offending check's behavior. Unless the
    check handles them, the engine records the check as failed.
    """


class EmissionError(CheckExecutionError):
    """A finding could not be emitted.

    Common causes:
        - Emitting after the check's execution window closed
        - Emitting a finding kind the check did not declare
    """


class UndeclaredDependencyError(CheckExecutionError, LookupError):
    """A check read the result of a check it does not declare as a dependency."""

    def __init__(self, check: str, dependency: str) -> None:
        self.check = check
        self.dependency = dependency
        super().__init__(
            f"Check {check!r} did not declare a dependency on {dependency!r}"
        )


class StoreWriteError(CheckExecutionError):
    """A result store entry was written twice in the same run."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Result for {name!r} is already recorded")


class ExternalToolError(CheckExecutionError):
    """An external tool invoked by a check did not complete successfully.

    Attributes:
        command: The command that was executed.
        returncode: The exit code, when the process ran at all.
    """

    def __init__(
        self, message: str, *, command: tuple[str, ...], returncode: int | None
    ) -> None:
        self.command = command
        self.returncode = returncode
        super().__init__(message)


class ToolTimeoutError(ExternalToolError):
    """An external tool exceeded its time bound and was terminated."""


class ToolNotFoundError(ExternalToolError):
    """An external tool is not installed or not on ``PATH``."""


__all__ = [
    "CheckExecutionError",
    "CircularDependencyError",
    "ConfigurationError",
    "DuplicateCheckError",
    "EmissionError",
    "ExternalToolError",
    "PluginCheckError",
    "SettingsError",
    "StoreWriteError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "UndeclaredDependencyError",
    "UnknownDependencyError",
]
