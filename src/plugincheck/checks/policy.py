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

"""Run-scoped severity policy.

A :class:`SeverityPolicy` decides, at the moment a finding is emitted, which
severity it carries, whether its kind is enabled at all, and whether the kind
should announce clean passes. It is created per run (optionally seeded from
:class:`~plugincheck.config.ValidatorSettings`) and may be amended by checks
during the run. Static :class:`~plugincheck.checks.Check` declarations are
never modified.

Severity lookup order for ``(check, kind)``:

1. ``forced`` (report-only runs) wins over everything.
2. An explicit ``(check, kind)`` entry.
3. A check-wide entry added with ``kind=None``.
4. The kind's declared default severity.
5. The check's fallback severity from settings, then ``default_severity``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..runtime.logging import StructuredLogger, get_logger
from ._types import FindingKind, Severity

if TYPE_CHECKING:
    from ..config import ValidatorSettings
    from .registry import CheckRegistry

logger: StructuredLogger = get_logger(__name__, context={"component": "policy"})

type _Key = tuple[str, str | None]


@dataclass(slots=True)
class SeverityPolicy:
    """Mutable override table owned by exactly one validation run.

    Example::

        policy = SeverityPolicy()
        policy.override("toolingcompliance", "missing-config-dir", Severity.WARNING)
        policy.set_announce("typesuffix", "plugin-type-suffix", True)

        report_only = SeverityPolicy(forced=Severity.INFO)
    """

    default_severity: Severity = Severity.WARNING
    """Severity for kinds without a declared or configured one."""

    forced: Severity | None = None
    """When set, every finding of the run carries this severity."""

    report_all: bool = False
    """Announce clean passes for every kind."""

    _overrides: dict[_Key, Severity] = field(
        default_factory=lambda: dict[_Key, Severity]()
    )
    _fallbacks: dict[str, Severity] = field(default_factory=lambda: dict[str, Severity]())
    _announce: dict[_Key, bool] = field(default_factory=lambda: dict[_Key, bool]())
    _disabled: set[_Key] = field(default_factory=lambda: set[_Key]())
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def override(self, check: str, kind: str | None, severity: Severity) -> None:
        """Replace the severity of ``kind`` (or all kinds when None) for ``check``."""
        with self._lock:
            self._overrides[(check, kind)] = severity
        logger.debug(
            "policy.override",
            event="policy.override",
            context={"check": check, "kind": kind, "severity": severity.value},
        )

    def set_fallback(self, check: str, severity: Severity) -> None:
        """Severity for kinds of ``check`` that declare none."""
        with self._lock:
            self._fallbacks[check] = severity

    def severity_for(self, check: str, kind: FindingKind) -> Severity:
        """Return the effective severity for ``kind`` emitted by ``check``."""
        with self._lock:
            if self.forced is not None:
                return self.forced
            for key in ((check, kind.name), (check, None)):
                severity = self._overrides.get(key)
                if severity is not None:
                    return severity
            if kind.severity is not None:
                return kind.severity
            return self._fallbacks.get(check, self.default_severity)

    def disable(self, check: str, kind: str | None = None) -> None:
        """Suppress findings of ``kind`` (or every kind when None) for ``check``."""
        with self._lock:
            self._disabled.add((check, kind))

    def enable(self, check: str, kind: str | None = None) -> None:
        with self._lock:
            self._disabled.discard((check, kind))

    def is_enabled(self, check: str, kind: str) -> bool:
        with self._lock:
            return (check, None) not in self._disabled and (
                check,
                kind,
            ) not in self._disabled

    def set_announce(self, check: str, kind: str | None, enabled: bool) -> None:
        """Toggle passed-announcements of ``kind`` (or all kinds) for ``check``."""
        with self._lock:
            self._announce[(check, kind)] = enabled

    def announces(self, check: str, kind: FindingKind) -> bool:
        """Return True when a clean pass of ``kind`` should be announced."""
        with self._lock:
            for key in ((check, kind.name), (check, None)):
                explicit = self._announce.get(key)
                if explicit is not None:
                    return explicit
            return self.report_all or kind.always_announce

    def copy(self) -> SeverityPolicy:
        """Return an independent policy with the same tables and a fresh lock."""
        with self._lock:
            return SeverityPolicy(
                default_severity=self.default_severity,
                forced=self.forced,
                report_all=self.report_all,
                _overrides=dict(self._overrides),
                _fallbacks=dict(self._fallbacks),
                _announce=dict(self._announce),
                _disabled=set(self._disabled),
            )

    @classmethod
    def from_settings(
        cls,
        registry: CheckRegistry,
        settings: ValidatorSettings,
        *,
        plugin_id: str | None = None,
    ) -> SeverityPolicy:
        """Seed a run's policy from validator settings.

        Enablement is inherited global, then check, then kind; a check whose
        ``exceptions`` lists ``plugin_id`` is disabled for that plugin.
        Severity settings on a kind become explicit overrides, while a
        check-level severity only applies to kinds that declare no default.
        """
        global_ = settings.global_
        policy = cls(
            default_severity=global_.severity or Severity.WARNING,
            forced=Severity.INFO if global_.report_only else None,
            report_all=global_.report_all,
        )

        for item in registry:
            check_settings = settings.checks.get(item.name)
            check_enabled = global_.enabled
            if check_settings is not None:
                if check_settings.enabled is not None:
                    check_enabled = check_settings.enabled
                if check_settings.severity is not None:
                    policy.set_fallback(item.name, check_settings.severity)
                if plugin_id and plugin_id in check_settings.exceptions:
                    check_enabled = False

            for kind in item.kinds:
                kind_enabled = check_enabled
                kind_settings = (
                    check_settings.kinds.get(kind.name)
                    if check_settings is not None
                    else None
                )
                if kind_settings is not None:
                    if kind_settings.enabled is not None:
                        kind_enabled = kind_settings.enabled
                    if kind_settings.severity is not None:
                        policy.override(item.name, kind.name, kind_settings.severity)
                if not kind_enabled:
                    policy.disable(item.name, kind.name)

        return policy


__all__ = ["SeverityPolicy"]
