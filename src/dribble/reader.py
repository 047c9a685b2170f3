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

"""Read-side chunking adapter.

:class:`ChunkedReader` wraps a blocking byte source and hands data back in
random 1 to 4 byte pieces, so code under test sees short reads at every
possible boundary::

    import io

    from dribble import ChunkedReader

    data = b"This is my test data"
    reader = ChunkedReader(io.BytesIO(data))
    assert reader.read() == data

Because the adapter is an :class:`io.RawIOBase`, it can be passed anywhere a
raw binary stream is expected, including :class:`io.BufferedReader`.
"""

from __future__ import annotations

import io
from collections.abc import Buffer, Callable
from typing import override

from .dbc import ensure, invariant
from .logging import StructuredLogger, get_logger
from .policy import DEFAULT_POLICY, ChunkPolicy, draw_chunk_size
from .randomness import RandomSource, default_random
from .streams import ByteSource, ReadableSource

__all__ = ["ChunkedReader"]

type _Fill = Callable[[bytearray], int | None]


def _resolve_fill(source: object) -> _Fill:
    readinto = getattr(source, "readinto", None)
    if callable(readinto):
        return readinto

    read = getattr(source, "read", None)
    if callable(read):

        def fill(buffer: bytearray) -> int | None:
            data = read(len(buffer))
            if data is None:
                return None
            if len(data) <= len(buffer):
                buffer[: len(data)] = data
            return len(data)

        return fill

    msg = f"{type(source).__name__} has neither readinto() nor read()"
    raise TypeError(msg)


def _buffer_consistent(reader: ChunkedReader) -> tuple[bool, str]:
    return (
        0 <= reader._used <= reader._available <= len(reader._buffer),
        f"used={reader._used} available={reader._available} capacity={len(reader._buffer)}",
    )


def _chunk_within_bounds(
    reader: ChunkedReader, buffer: Buffer, result: int | None
) -> bool:
    if result is None or result == 0:
        return True
    nbytes = memoryview(buffer).nbytes
    if result > min(nbytes, reader.policy.read_max):
        return False
    # Below read_min only when the buffered remainder ran out.
    return result >= min(nbytes, reader.policy.read_min) or (
        reader._used == reader._available
    )


@invariant(_buffer_consistent)
class ChunkedReader(io.RawIOBase):
    """Wrap a byte source and return its data in small random chunks.

    Each :meth:`readinto` call returns between ``policy.read_min`` and
    ``policy.read_max`` bytes (1 to 4 by default), never more than the
    caller's buffer holds and never more than is buffered. The source is
    consulted only when the private refill buffer is exhausted, at most once
    per call, so a 64 byte refill serves up to 16 reads.

    The reader returns 0 only when the latest source read returned 0, or
    when the caller's buffer is empty. Exceptions from the source propagate
    unchanged. Closing the reader leaves the source open.

    Args:
        source: Object with ``readinto(buffer)`` or, failing that,
            ``read(size)``.
        rng: Generator for chunk sizes. Defaults to :func:`default_random`.
        policy: Chunk bounds and refill buffer size.
        logger: Optional logger override for the DEBUG trace.

    Raises:
        TypeError: If ``source`` offers neither ``readinto`` nor ``read``.
    """

    def __init__(
        self,
        source: ByteSource | ReadableSource,
        *,
        rng: RandomSource | None = None,
        policy: ChunkPolicy | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        super().__init__()
        self._fill = _resolve_fill(source)
        self._source = source
        self._policy = policy if policy is not None else DEFAULT_POLICY
        self._rng = rng if rng is not None else default_random()
        self._buffer = bytearray(self._policy.buffer_size)
        self._used = 0
        self._available = 0
        self._logger = get_logger(
            __name__, logger_override=logger, context={"component": "chunked_reader"}
        )
        self._logger.debug(
            "Chunked reader created.",
            event="dribble.reader.created",
            context={
                "source": type(source).__name__,
                "buffer_size": self._policy.buffer_size,
            },
        )

    @property
    def source(self) -> ByteSource | ReadableSource:
        """The wrapped source."""
        return self._source

    @property
    def policy(self) -> ChunkPolicy:
        """Chunk bounds in effect."""
        return self._policy

    @override
    def readable(self) -> bool:
        return True

    @override
    @ensure(_chunk_within_bounds)
    def readinto(self, buffer: Buffer, /) -> int | None:
        """Copy the next small chunk into ``buffer``.

        Returns:
            Bytes copied. ``0`` at end of input or for an empty ``buffer``.
            ``None`` when a non-blocking source has nothing yet.

        Raises:
            ValueError: If the reader is closed.
            OSError: If the source reports more bytes than were requested.
        """
        if self.closed:
            msg = "I/O operation on closed file."
            raise ValueError(msg)

        with memoryview(buffer) as raw, raw.cast("B") as view:
            if not view.nbytes:
                return 0

            if self._used == self._available:
                self._used = 0
                self._available = 0
                count = self._fill(self._buffer)
                if count is None:
                    return None
                if not 0 <= count <= len(self._buffer):
                    msg = (
                        f"source returned invalid length {count} "
                        f"(should be 0 <= n <= {len(self._buffer)})"
                    )
                    raise OSError(msg)
                self._available = count
                self._logger.debug(
                    "Refilled from source.",
                    event="dribble.reader.refill",
                    context={"available": count},
                )

            if not self._available:
                self._logger.debug("Source exhausted.", event="dribble.reader.eof")
                return 0

            size = min(
                view.nbytes,
                draw_chunk_size(self._rng, self._policy.read_min, self._policy.read_max),
                self._available - self._used,
            )
            view[:size] = self._buffer[self._used : self._used + size]
            self._used += size
            return size
