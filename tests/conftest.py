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

from __future__ import annotations

from pathlib import Path

import pytest

from plugincheck.checks import RunContext, SeverityPolicy
from plugincheck.config import RunConfig
from tests.helpers.checks import ContextFactory


@pytest.fixture
def run_config(tmp_path: Path) -> RunConfig:
    """Return a run config pointing at an empty archive directory."""
    return RunConfig(archive_dir=tmp_path, plugin_id="acme-clock-panel")


@pytest.fixture
def make_context(run_config: RunConfig) -> ContextFactory:
    """Return a factory creating one run context per call."""

    def factory(*, policy: SeverityPolicy | None = None) -> RunContext:
        if policy is None:
            return RunContext(config=run_config)
        return RunContext(config=run_config, policy=policy)

    return factory
