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

"""Run inputs and validator settings.

:class:`RunConfig` holds the immutable inputs of one validation run.
:class:`ValidatorSettings` holds the operator's rule configuration, loaded
from a TOML or YAML file with :func:`load_settings`::

    # plugincheck.yaml
    global:
      enabled: true
      reportAll: false
    analyzers:
      typesuffix:
        severity: error
        exceptions: [grafana-legacy-panel]
        rules:
          plugin-type-suffix:
            enabled: false
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, cast

import yaml

from .checks._types import Severity
from .errors import SettingsError

ENV_REPORT_ALL = "PLUGINCHECK_REPORT_ALL"
ENV_SEVERITY = "PLUGINCHECK_SEVERITY"
ENV_REPORT_ONLY = "PLUGINCHECK_REPORT_ONLY"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Immutable inputs for one validation run.

    Attributes:
        archive_dir: Directory the plugin archive was extracted into.
        archive_file: The archive path or URL given to the validator.
        source_code_dir: Directory holding the plugin source code, if any.
        source_code_reference: The source location given to the validator.
        checksum: Checksum supplied alongside the archive.
        plugin_id: Plugin identifier, used to apply per-check exceptions.
        options: Feature toggles read by individual checks.
        only: Restrict the run to these checks and their dependencies.
    """

    archive_dir: Path
    archive_file: str | None = None
    source_code_dir: Path | None = None
    source_code_reference: str | None = None
    checksum: str | None = None
    plugin_id: str | None = None
    options: Mapping[str, object] = field(default_factory=dict[str, object])
    only: frozenset[str] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        if self.only is not None:
            object.__setattr__(self, "only", frozenset(self.only))

    def option(self, name: str, default: object = None) -> object:
        """Return the feature toggle ``name`` or ``default``."""
        return self.options.get(name, default)

    def to_log_context(self) -> dict[str, str | None]:
        return {
            "archive_dir": str(self.archive_dir),
            "plugin_id": self.plugin_id,
            "source_code_dir": (
                str(self.source_code_dir) if self.source_code_dir else None
            ),
        }


@dataclass(frozen=True, slots=True)
class KindSettings:
    """Settings for one finding kind of one check."""

    enabled: bool | None = None
    severity: Severity | None = None


@dataclass(frozen=True, slots=True)
class CheckSettings:
    """Settings for one check.

    ``severity`` applies to the check's kinds that declare no default.
    ``exceptions`` lists plugin ids the check is disabled for.
    """

    enabled: bool | None = None
    severity: Severity | None = None
    kinds: Mapping[str, KindSettings] = field(
        default_factory=dict[str, KindSettings]
    )
    exceptions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "kinds", MappingProxyType(dict(self.kinds)))


@dataclass(frozen=True, slots=True)
class GlobalSettings:
    """Settings inherited by every check.

    Attributes:
        enabled: Whether checks report findings unless configured otherwise.
        severity: Severity for kinds with no declared or configured one.
        report_all: Announce clean passes for every kind.
        report_only: Force every finding to ``info`` (dry run).
    """

    enabled: bool = True
    severity: Severity | None = None
    report_all: bool = False
    report_only: bool = False


@dataclass(frozen=True, slots=True)
class ValidatorSettings:
    """Operator configuration for a validator deployment."""

    global_: GlobalSettings = field(default_factory=GlobalSettings)
    checks: Mapping[str, CheckSettings] = field(
        default_factory=dict[str, CheckSettings]
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "checks", MappingProxyType(dict(self.checks)))


def load_settings(
    source: Path | str | Mapping[str, Any] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ValidatorSettings:
    """Load validator settings.

    Parameters
    ----------
    source:
        Path to a ``.toml``, ``.yaml`` or ``.yml`` file, or an in-memory
        mapping with the same structure. ``None`` yields the defaults.
    env:
        Optional environment mapping. Defaults to :data:`os.environ`.

    Raises
    ------
    SettingsError
        The document is malformed or names an unknown severity.
    FileNotFoundError
        ``source`` names a file that does not exist.
    """

    env_map = os.environ if env is None else env

    if source is None:
        raw: Mapping[str, object] = {}
    elif isinstance(source, Mapping):
        raw = cast(Mapping[str, object], source)
    else:
        raw = _load_settings_file(Path(source))

    global_section = _section(raw, "global")
    global_ = GlobalSettings(
        enabled=_bool(global_section, "enabled", default=True),
        severity=_severity(global_section.get("severity")),
        report_all=_bool(global_section, "report_all", "reportAll", default=False),
        report_only=_bool(
            global_section, "report_only", "reportOnly", default=False
        ),
    )
    global_ = _apply_environment_overrides(global_, env_map)

    checks_section = _section(raw, "analyzers", "checks")
    checks = {
        str(name): _check_settings(str(name), value)
        for name, value in checks_section.items()
    }
    return ValidatorSettings(global_=global_, checks=checks)


def _load_settings_file(path: Path) -> dict[str, object]:
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    suffix = path.suffix.lower()
    data: object
    try:
        if suffix == ".toml":
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        elif suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        else:
            raise SettingsError(f"Unsupported settings format: {path.suffix}")
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise SettingsError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(data, MutableMapping):
        raise SettingsError("Settings file must contain a mapping at the root.")

    mapping = cast(MutableMapping[object, object], data)
    typed: dict[str, object] = {}
    for key, value in mapping.items():
        if not isinstance(key, str):
            raise SettingsError(f"Settings keys must be strings (got {key!r}).")
        typed[key] = value
    return typed


def _check_settings(name: str, raw: object) -> CheckSettings:
    if raw is None:
        return CheckSettings()
    if not isinstance(raw, Mapping):
        raise SettingsError(f"Settings for check {name!r} must be a mapping.")
    section = cast(Mapping[str, object], raw)

    kinds_section = _section(section, "rules", "kinds")
    kinds: dict[str, KindSettings] = {}
    for kind_name, kind_raw in kinds_section.items():
        if kind_raw is None:
            kinds[str(kind_name)] = KindSettings()
            continue
        if not isinstance(kind_raw, Mapping):
            raise SettingsError(
                f"Settings for rule {kind_name!r} of {name!r} must be a mapping."
            )
        kind_section = cast(Mapping[str, object], kind_raw)
        kinds[str(kind_name)] = KindSettings(
            enabled=_bool(kind_section, "enabled", default=None),
            severity=_severity(kind_section.get("severity")),
        )

    exceptions_raw = section.get("exceptions") or ()
    if isinstance(exceptions_raw, str) or not isinstance(
        exceptions_raw, (list, tuple)
    ):
        raise SettingsError(f"Exceptions for check {name!r} must be a list.")

    return CheckSettings(
        enabled=_bool(section, "enabled", default=None),
        severity=_severity(section.get("severity")),
        kinds=kinds,
        exceptions=tuple(str(item) for item in cast(list[object], exceptions_raw)),
    )


def _apply_environment_overrides(
    global_: GlobalSettings, env: Mapping[str, str]
) -> GlobalSettings:
    if ENV_REPORT_ALL in env:
        global_ = replace(
            global_, report_all=_parse_flag(ENV_REPORT_ALL, env[ENV_REPORT_ALL])
        )
    if ENV_REPORT_ONLY in env:
        global_ = replace(
            global_, report_only=_parse_flag(ENV_REPORT_ONLY, env[ENV_REPORT_ONLY])
        )
    if env.get(ENV_SEVERITY):
        global_ = replace(global_, severity=Severity.parse(env[ENV_SEVERITY]))
    return global_


def _section(raw: Mapping[str, object], *names: str) -> Mapping[str, object]:
    for name in names:
        value = raw.get(name)
        if value is None:
            continue
        if not isinstance(value, Mapping):
            raise SettingsError(f"Settings section {name!r} must be a mapping.")
        return cast(Mapping[str, object], value)
    return {}


def _bool[T: bool | None](
    section: Mapping[str, object], *names: str, default: T
) -> bool | T:
    for name in names:
        if name not in section:
            continue
        value = section[name]
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return _parse_flag(name, value)
        raise SettingsError(f"Setting {name!r} must be a boolean (got {value!r}).")
    return default


def _severity(value: object) -> Severity | None:
    if value is None:
        return None
    if isinstance(value, (str, Severity)):
        return Severity.parse(value)
    raise SettingsError(f"Severity must be a string (got {value!r}).")


def _parse_flag(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise SettingsError(f"Invalid boolean for {name}: {value!r}")


__all__ = [
    "CheckSettings",
    "GlobalSettings",
    "KindSettings",
    "RunConfig",
    "ValidatorSettings",
    "load_settings",
]
