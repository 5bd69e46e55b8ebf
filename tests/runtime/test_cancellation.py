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

"""Tests for CancellationToken."""

from __future__ import annotations

import threading

import pytest

from plugincheck.runtime import CancellationToken, CancelledError


class TestCancellationToken:
    def test_initial_state(self) -> None:
        token = CancellationToken()

        assert not token.is_cancelled()
        token.check()

    def test_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()

        assert token.is_cancelled()
        with pytest.raises(CancelledError):
            token.check()

    def test_cancel_is_idempotent(self) -> None:
        token = CancellationToken()
        token.cancel()
        token.cancel()

        assert token.is_cancelled()

    def test_child_observes_parent(self) -> None:
        parent = CancellationToken()
        child = parent.child()

        parent.cancel()

        assert child.is_cancelled()

    def test_child_does_not_cancel_parent(self) -> None:
        parent = CancellationToken()
        child = parent.child()

        child.cancel()

        assert child.is_cancelled()
        assert not parent.is_cancelled()

    def test_wait_times_out(self) -> None:
        assert CancellationToken().wait(timeout=0.01) is False

    def test_wait_wakes_on_cancel_from_other_thread(self) -> None:
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            assert token.wait(timeout=5)
        finally:
            timer.cancel()

    def test_child_wait_reports_parent_cancellation(self) -> None:
        parent = CancellationToken()
        child = parent.child()
        parent.cancel()

        assert child.wait(timeout=0.01)
