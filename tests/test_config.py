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

"""Tests for run inputs and settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from plugincheck.checks import Severity
from plugincheck.config import (
    CheckSettings,
    GlobalSettings,
    KindSettings,
    RunConfig,
    ValidatorSettings,
    load_settings,
)
from plugincheck.errors import SettingsError


class TestRunConfig:
    def test_options_are_read_only(self, tmp_path: Path) -> None:
        options = {"published": True}
        config = RunConfig(archive_dir=tmp_path, options=options)
        options["published"] = False

        assert config.option("published") is True
        assert config.option("missing", "fallback") == "fallback"
        with pytest.raises(TypeError):
            config.options["published"] = False  # type: ignore[index]

    def test_only_is_frozen(self, tmp_path: Path) -> None:
        config = RunConfig(archive_dir=tmp_path, only={"metadata"})  # type: ignore[arg-type]

        assert config.only == frozenset({"metadata"})

    def test_log_context(self, tmp_path: Path) -> None:
        config = RunConfig(
            archive_dir=tmp_path, plugin_id="acme-clock-panel", source_code_dir=tmp_path
        )

        assert config.to_log_context() == {
            "archive_dir": str(tmp_path),
            "plugin_id": "acme-clock-panel",
            "source_code_dir": str(tmp_path),
        }


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings(env={})

        assert settings == ValidatorSettings()
        assert settings.global_.enabled is True
        assert settings.global_.report_all is False

    def test_mapping(self) -> None:
        settings = load_settings(
            {
                "global": {"enabled": True, "severity": "recommendation"},
                "checks": {
                    "typesuffix": {
                        "severity": "error",
                        "exceptions": ["acme-legacy-panel"],
                        "kinds": {
                            "plugin-type-suffix": {"enabled": "no", "severity": "ok"}
                        },
                    },
                    "readme": None,
                },
            },
            env={},
        )

        assert settings.global_ == GlobalSettings(severity=Severity.RECOMMENDATION)
        assert settings.checks["typesuffix"] == CheckSettings(
            severity=Severity.ERROR,
            exceptions=("acme-legacy-panel",),
            kinds={
                "plugin-type-suffix": KindSettings(enabled=False, severity=Severity.INFO)
            },
        )
        assert settings.checks["readme"] == CheckSettings()

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plugincheck.yaml"
        path.write_text(
            """
global:
  reportAll: true
analyzers:
  typesuffix:
    enabled: false
    rules:
      plugin-type-suffix:
        severity: warning
""",
            encoding="utf-8",
        )

        settings = load_settings(path, env={})

        assert settings.global_.report_all is True
        check_settings = settings.checks["typesuffix"]
        assert check_settings.enabled is False
        assert check_settings.kinds["plugin-type-suffix"].severity is Severity.WARNING

    def test_toml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plugincheck.toml"
        path.write_text(
            """
[global]
report_only = true

[analyzers.osv]
severity = "error"
""",
            encoding="utf-8",
        )

        settings = load_settings(str(path), env={})

        assert settings.global_.report_only is True
        assert settings.checks["osv"].severity is Severity.ERROR

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "plugincheck.yml"
        path.write_text("", encoding="utf-8")

        assert load_settings(path, env={}) == ValidatorSettings()

    def test_environment_overrides(self) -> None:
        settings = load_settings(
            {"global": {"reportAll": False}},
            env={
                "PLUGINCHECK_REPORT_ALL": "1",
                "PLUGINCHECK_REPORT_ONLY": "true",
                "PLUGINCHECK_SEVERITY": "error",
            },
        )

        assert settings.global_ == GlobalSettings(
            severity=Severity.ERROR, report_all=True, report_only=True
        )

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            _ = load_settings(tmp_path / "missing.yaml", env={})

    @pytest.mark.parametrize(
        ("filename", "content", "match"),
        [
            ("settings.json", "{}", "Unsupported"),
            ("settings.yaml", "global: [", "Could not parse"),
            ("settings.toml", "[global", "Could not parse"),
            ("settings.yaml", "- a\n- b\n", "mapping at the root"),
        ],
    )
    def test_invalid_files(
        self, tmp_path: Path, filename: str, content: str, match: str
    ) -> None:
        path = tmp_path / filename
        path.write_text(content, encoding="utf-8")

        with pytest.raises(SettingsError, match=match):
            _ = load_settings(path, env={})

    @pytest.mark.parametrize(
        "raw",
        [
            {"global": "yes"},
            {"global": {"enabled": 3}},
            {"global": {"severity": "catastrophic"}},
            {"global": {"severity": 5}},
            {"analyzers": {"osv": ["error"]}},
            {"analyzers": {"osv": {"exceptions": "acme"}}},
            {"analyzers": {"osv": {"rules": {"osv": "off"}}}},
        ],
    )
    def test_invalid_documents(self, raw: dict[str, object]) -> None:
        with pytest.raises(SettingsError):
            _ = load_settings(raw, env={})

    def test_invalid_environment_flag(self) -> None:
        with pytest.raises(SettingsError, match="PLUGINCHECK_REPORT_ALL"):
            _ = load_settings(env={"PLUGINCHECK_REPORT_ALL": "maybe"})
