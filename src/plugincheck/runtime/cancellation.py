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

"""Run-scoped cancellation."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..errors import PluginCheckError


class CancelledError(PluginCheckError):
    """Raised by :meth:`CancellationToken.check` once the run is cancelled."""


@dataclass
class CancellationToken:
    """Thread-safe cancellation flag shared by one validation run.

    The engine stops scheduling checks once the token is cancelled. Checks
    that block on external collaborators poll :meth:`is_cancelled` or call
    :meth:`check` between steps; :func:`plugincheck.runtime.tools.run_tool`
    terminates its child process when the token fires.

    Example::

        token = CancellationToken()

        def scan(ctx, deps):
            for path in files:
                ctx.token.check()  # Raises CancelledError once cancelled
                scan_one(path)

        # From another thread
        token.cancel()
    """

    _event: threading.Event = field(default_factory=threading.Event, repr=False)
    _parent: CancellationToken | None = field(default=None, repr=False)

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def is_cancelled(self) -> bool:
        """Return True if this token or any ancestor was cancelled."""
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.is_cancelled()

    def check(self) -> None:
        """Raise :class:`CancelledError` if cancelled."""
        if self.is_cancelled():
            raise CancelledError("Validation run was cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return the flag."""
        if self._parent is None:
            return self._event.wait(timeout)
        return self._event.wait(timeout) or self._parent.is_cancelled()

    def child(self) -> CancellationToken:
        """Create a token that also reports cancellation of this one."""
        return CancellationToken(_parent=self)


__all__ = ["CancellationToken", "CancelledError"]
