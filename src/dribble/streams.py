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

"""Capability protocols for the collaborators the adapters wrap.

The adapters only need the narrowest blocking byte-stream operations, so
anything from :class:`io.BytesIO` to a socket file object to a hand-written
test double can be wrapped without subclassing.
"""

from __future__ import annotations

from collections.abc import Buffer
from typing import Protocol, runtime_checkable

__all__ = [
    "ByteSink",
    "ByteSource",
    "ReadableSource",
]


@runtime_checkable
class ByteSource(Protocol):
    """Blocking source that fills a caller-supplied buffer.

    This is the shape of :meth:`io.RawIOBase.readinto` and is satisfied by
    binary files, :class:`io.BytesIO` and socket file objects.

    Example::

        with open("payload.bin", "rb", buffering=0) as raw:
            reader = ChunkedReader(raw)
    """

    def readinto(self, buffer: Buffer, /) -> int | None:
        """Read up to ``len(buffer)`` bytes into ``buffer``.

        Returns:
            Number of bytes read. ``0`` means end of input. ``None`` means a
            non-blocking source has no data yet.
        """
        ...


@runtime_checkable
class ReadableSource(Protocol):
    """Blocking source that returns freshly allocated bytes.

    Accepted for collaborators that predate ``readinto``; the reader copies
    what it gets into its own buffer.
    """

    def read(self, size: int = -1, /) -> bytes:
        """Read up to ``size`` bytes. Empty bytes at end of input."""
        ...


@runtime_checkable
class ByteSink(Protocol):
    """Blocking sink accepting bytes, with an explicit flush."""

    def write(self, data: Buffer, /) -> int | None:
        """Write ``data`` and return the number of bytes accepted."""
        ...

    def flush(self) -> None:
        """Push any data buffered by the sink to its destination."""
        ...
