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

"""Dependency-ordered validation checks for plugin archives."""

from __future__ import annotations

from .checks import (
    ABSENT,
    Check,
    CheckPass,
    CheckRegistry,
    Dependency,
    DependencyResults,
    Finding,
    FindingKind,
    RegistryBuilder,
    Severity,
    SeverityPolicy,
    ValidationReport,
    check,
)
from .config import RunConfig, ValidatorSettings, load_settings
from .errors import (
    CheckExecutionError,
    CircularDependencyError,
    ConfigurationError,
    DuplicateCheckError,
    EmissionError,
    PluginCheckError,
    SettingsError,
    UndeclaredDependencyError,
    UnknownDependencyError,
)
from .runtime import CancellationToken, configure_logging, get_logger
from .validate import run_validation, validate

__all__ = [
    "ABSENT",
    "CancellationToken",
    "Check",
    "CheckExecutionError",
    "CheckPass",
    "CheckRegistry",
    "CircularDependencyError",
    "ConfigurationError",
    "Dependency",
    "DependencyResults",
    "DuplicateCheckError",
    "EmissionError",
    "Finding",
    "FindingKind",
    "PluginCheckError",
    "RegistryBuilder",
    "RunConfig",
    "SettingsError",
    "Severity",
    "SeverityPolicy",
    "UndeclaredDependencyError",
    "UnknownDependencyError",
    "ValidationReport",
    "ValidatorSettings",
    "check",
    "configure_logging",
    "get_logger",
    "load_settings",
    "run_validation",
    "validate",
]
