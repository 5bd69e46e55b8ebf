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

"""Tests for RunContext, CheckPass and DependencyResults."""

from __future__ import annotations

import pytest

from plugincheck.checks import (
    ABSENT,
    Dependency,
    DependencyResults,
    Done,
    EntryState,
    Failed,
    FindingKind,
    Severity,
)
from plugincheck.errors import EmissionError, UndeclaredDependencyError
from tests.helpers import ContextFactory, returning

TYPE_SUFFIX = FindingKind("plugin-type-suffix", Severity.ERROR)
ID_FORMAT = FindingKind("invalid-id-format", Severity.WARNING)


class TestRunContext:
    def test_contexts_do_not_share_state(self, make_context: ContextFactory) -> None:
        first = make_context()
        second = make_context()

        first.store.record("metadata", Done(b"{}"))

        assert "metadata" not in second.store
        assert first.run_id != second.run_id
        assert first.policy is not second.policy

    def test_sink_uses_run_policy(self, make_context: ContextFactory) -> None:
        ctx = make_context()

        assert ctx.sink.policy is ctx.policy

    def test_cancel(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        assert not ctx.cancelled

        ctx.cancel()

        assert ctx.cancelled
        assert ctx.token.is_cancelled()

    def test_log_context(self, make_context: ContextFactory) -> None:
        ctx = make_context()

        log_context = ctx.to_log_context()

        assert log_context["run_id"] == str(ctx.run_id)
        assert log_context["plugin_id"] == "acme-clock-panel"


class TestDependencyResults:
    def test_collect_maps_declared_dependencies(
        self, make_context: ContextFactory
    ) -> None:
        ctx = make_context()
        ctx.store.record("metadata", Done(b"{}"))
        ctx.store.record("archive", Failed(RuntimeError("broken zip")))
        item = returning(
            "typesuffix", None, requires=["metadata", "archive", "manifest"]
        )

        deps = DependencyResults.collect(item, ctx.store)

        assert dict(deps) == {"metadata": b"{}", "archive": ABSENT, "manifest": ABSENT}
        assert deps.state("metadata") is EntryState.DONE
        assert deps.failed("archive")
        assert deps.state("manifest") is EntryState.PENDING
        assert deps.available("metadata")
        assert not deps.available("archive")

    def test_wrong_type_is_absent(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        ctx.store.record("metadata", Done("not bytes"))
        item = returning("typesuffix", None, requires=[Dependency("metadata", bytes)])

        deps = DependencyResults.collect(item, ctx.store)

        assert deps["metadata"] is ABSENT

    def test_value_narrows_type(self) -> None:
        deps = DependencyResults("typesuffix", {"metadata": b"{}"})

        assert deps.value("metadata", bytes) == b"{}"
        assert deps.value("metadata", str) is ABSENT
        assert deps.value("metadata") == b"{}"

    def test_undeclared_access_raises(self) -> None:
        deps = DependencyResults("typesuffix", {"metadata": b"{}"})

        with pytest.raises(UndeclaredDependencyError) as exc_info:
            _ = deps["archive"]
        assert exc_info.value.check == "typesuffix"
        assert exc_info.value.dependency == "archive"

        with pytest.raises(UndeclaredDependencyError):
            _ = deps.state("archive")
        with pytest.raises(UndeclaredDependencyError):
            _ = deps.get("archive")
        assert "archive" not in deps


class TestCheckPass:
    def test_emit_records_attributed_finding(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(returning("typesuffix", None, kinds=[TYPE_SUFFIX]))

        finding = check_pass.emit("plugin-type-suffix", "bad id", "detail")

        assert finding is not None
        assert finding.source_check == "typesuffix"
        assert finding.severity is Severity.ERROR
        assert ctx.finalize() == (finding,)

    def test_emit_after_close_rejected(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(returning("typesuffix", None, kinds=[TYPE_SUFFIX]))
        check_pass.close()

        assert not check_pass.is_open
        with pytest.raises(EmissionError, match="execution window"):
            _ = check_pass.emit("plugin-type-suffix", "late")
        assert ctx.finalize() == ()

    def test_override_severity_applies_to_later_emissions(
        self, make_context: ContextFactory
    ) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(returning("typesuffix", None, kinds=[TYPE_SUFFIX]))

        check_pass.override_severity("plugin-type-suffix", "info")
        finding = check_pass.emit("plugin-type-suffix", "bad id")

        assert finding is not None
        assert finding.severity is Severity.INFO

    def test_override_undeclared_kind_rejected(
        self, make_context: ContextFactory
    ) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(returning("typesuffix", None, kinds=[TYPE_SUFFIX]))

        with pytest.raises(EmissionError):
            check_pass.override_severity("invalid-id-format", Severity.INFO)

    def test_passed_only_when_announcing(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(
            returning("typesuffix", None, kinds=[TYPE_SUFFIX, ID_FORMAT])
        )

        assert check_pass.passed("plugin-type-suffix", "id ok") is None
        check_pass.set_announce("plugin-type-suffix", True)
        announced = check_pass.passed("plugin-type-suffix", "id ok")

        assert announced is not None
        assert announced.severity is Severity.INFO
        assert not check_pass.should_announce("invalid-id-format")

    def test_findings_of_declared_dependency(
        self, make_context: ContextFactory
    ) -> None:
        ctx = make_context()
        metadata = returning("metadata", None, kinds=[ID_FORMAT, TYPE_SUFFIX])
        metadata_pass = ctx.open_pass(metadata)
        _ = metadata_pass.emit("invalid-id-format", "bad id")
        metadata_pass.close()
        ctx.store.record("metadata", Done(ABSENT))

        dependent = ctx.open_pass(returning("published", None, requires=[metadata]))

        assert [f.kind for f in dependent.findings_of("metadata")] == [
            "invalid-id-format"
        ]
        assert not dependent.has_errors("metadata")

        metadata_again = ctx.open_pass(metadata)
        _ = metadata_again.emit("plugin-type-suffix", "bad suffix")
        assert dependent.has_errors("metadata")

    def test_findings_of_undeclared_dependency_rejected(
        self, make_context: ContextFactory
    ) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(returning("published", None))

        with pytest.raises(UndeclaredDependencyError):
            _ = check_pass.findings_of("metadata")

    def test_exposes_config_and_token(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        check_pass = ctx.open_pass(returning("published", None))

        assert check_pass.config is ctx.config
        assert check_pass.token is ctx.token
