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

"""Deterministic collaborators for testing with the chunking adapters.

Example::

    from dribble import ChunkedWriter
    from dribble.testing import RecordingSink, ScriptedRandom

    sink = RecordingSink()
    writer = ChunkedWriter(sink, rng=ScriptedRandom([3, 0, 4]))
    writer.write(b"abcdefg")
    assert sink.fragments == [b"abc", b"", b"defg"]
"""

from __future__ import annotations

import errno
import io
from collections.abc import Buffer, Iterable
from dataclasses import dataclass, field

__all__ = [
    "FailingSink",
    "FailingSource",
    "RecordingSink",
    "ScriptedRandom",
]


def _injected_error() -> OSError:
    return OSError(errno.EIO, "injected failure")


class ScriptedRandom:
    """Random source that returns a fixed script of values.

    Each :meth:`randint` call returns the next scripted value regardless of
    the requested range; range checking is left to the adapter so tests can
    provoke out-of-range draws. The requested ranges are recorded in
    :attr:`calls`.

    Args:
        values: Values to return, in order.
        repeat: Cycle through ``values`` forever instead of stopping.

    Raises:
        ValueError: If ``values`` is empty.
    """

    def __init__(self, values: Iterable[int], *, repeat: bool = False) -> None:
        self._values = list(values)
        if not self._values:
            msg = "ScriptedRandom needs at least one value"
            raise ValueError(msg)
        self._repeat = repeat
        self._index = 0
        self.calls: list[tuple[int, int]] = []

    @property
    def remaining(self) -> int:
        """Scripted values not yet returned (always positive when repeating)."""
        if self._repeat:
            return len(self._values)
        return len(self._values) - self._index

    def randint(self, a: int, b: int) -> int:
        """Return the next scripted value.

        Raises:
            LookupError: If the script is exhausted and ``repeat`` is off.
        """
        self.calls.append((a, b))
        if self._index >= len(self._values):
            if not self._repeat:
                msg = f"ScriptedRandom exhausted after {len(self._values)} draws"
                raise LookupError(msg)
            self._index = 0
        value = self._values[self._index]
        self._index += 1
        return value


@dataclass(slots=True)
class RecordingSink:
    """Sink that records every write call as a separate fragment.

    Args:
        max_accept: Accept at most this many bytes per call, simulating a
            sink that performs short writes. ``None`` accepts everything.
    """

    max_accept: int | None = None
    fragments: list[bytes] = field(default_factory=list, init=False)
    flush_count: int = field(default=0, init=False)

    @property
    def content(self) -> bytes:
        """All accepted bytes, in order."""
        return b"".join(self.fragments)

    def write(self, data: Buffer, /) -> int:
        """Record the accepted prefix of ``data`` and return its length."""
        chunk = bytes(data)
        if self.max_accept is not None:
            chunk = chunk[: self.max_accept]
        self.fragments.append(chunk)
        return len(chunk)

    def flush(self) -> None:
        """Count the flush."""
        self.flush_count += 1


@dataclass(slots=True)
class FailingSource:
    """In-memory source that raises on a chosen ``readinto`` call.

    Args:
        data: Bytes to serve.
        fail_on: 1-based call number that raises ``error``. ``None`` never
            fails.
        error: Exception raised on the failing call.
        max_read: Cap on bytes returned per call, for sources that
            deliver less than asked.
    """

    data: bytes = b""
    fail_on: int | None = None
    error: BaseException = field(default_factory=_injected_error)
    max_read: int | None = None
    calls: int = field(default=0, init=False)
    _stream: io.BytesIO = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._stream = io.BytesIO(self.data)

    def readinto(self, buffer: Buffer, /) -> int:
        """Fill ``buffer`` from the remaining data, or raise when scheduled."""
        self.calls += 1
        if self.calls == self.fail_on:
            raise self.error
        view = memoryview(buffer).cast("B")
        if self.max_read is not None:
            view = view[: self.max_read]
        return self._stream.readinto(view)


@dataclass(slots=True)
class FailingSink:
    """Recording sink that raises on a chosen ``write`` call.

    Args:
        fail_on: 1-based write call number that raises ``error``.
        error: Exception raised on the failing call.
    """

    fail_on: int | None = None
    error: BaseException = field(default_factory=_injected_error)
    fragments: list[bytes] = field(default_factory=list, init=False)
    calls: int = field(default=0, init=False)
    flush_count: int = field(default=0, init=False)

    @property
    def content(self) -> bytes:
        """Bytes delivered before the failure."""
        return b"".join(self.fragments)

    def write(self, data: Buffer, /) -> int:
        """Record ``data`` or raise when scheduled."""
        self.calls += 1
        if self.calls == self.fail_on:
            raise self.error
        self.fragments.append(bytes(data))
        return len(self.fragments[-1])

    def flush(self) -> None:
        """Count the flush."""
        self.flush_count += 1
