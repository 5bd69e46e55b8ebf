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

"""Tests for ValidationReport."""

from __future__ import annotations

from uuid import uuid4

from plugincheck.checks import (
    CheckFailure,
    Done,
    Failed,
    Finding,
    Severity,
    ValidationReport,
)
from tests.helpers import ContextFactory, returning


def _finding(check: str, severity: Severity) -> Finding:
    return Finding(check, "kind", severity, f"{check} {severity.value}")


class TestValidationReport:
    def test_counts_and_lookup(self) -> None:
        report = ValidationReport(
            run_id=uuid4(),
            findings=(
                _finding("metadata", Severity.ERROR),
                _finding("readme", Severity.WARNING),
                _finding("metadata", Severity.WARNING),
            ),
            failures=(CheckFailure("osv", "RuntimeError", "boom"),),
        )

        assert report.has_errors
        assert report.error_count == 1
        assert report.warning_count == 2
        assert len(report.findings_for("metadata")) == 2
        assert report.failure_for("osv") == CheckFailure("osv", "RuntimeError", "boom")
        assert report.failure_for("metadata") is None

    def test_grouped_keeps_first_emission_order(self) -> None:
        report = ValidationReport(
            run_id=uuid4(),
            findings=(
                _finding("readme", Severity.INFO),
                _finding("metadata", Severity.ERROR),
                _finding("readme", Severity.WARNING),
            ),
        )

        grouped = report.grouped()

        assert list(grouped) == ["readme", "metadata"]
        assert [f.severity for f in grouped["readme"]] == [
            Severity.INFO,
            Severity.WARNING,
        ]

    def test_no_findings(self) -> None:
        report = ValidationReport(run_id=uuid4(), findings=())

        assert not report.has_errors
        assert report.grouped() == {}

    def test_from_context(self, make_context: ContextFactory) -> None:
        ctx = make_context()
        error = ValueError("bad json")
        ctx.store.record("metadata", Failed(error, duration_ms=4))
        order = (
            returning("metadata", None),
            returning("archive", None),
            returning("readme", None),
        )
        ctx.store.record("archive", Done("dist"))

        report = ValidationReport.from_context(ctx, order, findings=(), duration_ms=9)

        assert report.run_id == ctx.run_id
        assert [failure.check for failure in report.failures] == ["metadata"]
        assert report.failures[0].error_type == "ValueError"
        assert report.failures[0].message == "bad json"
        assert report.failures[0].error is error
        assert report.completed == ("archive",)
        assert report.not_run == ("readme",)
        assert report.duration_ms == 9
        assert not report.cancelled
