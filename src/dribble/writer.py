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

"""Write-side chunking adapter."""

from __future__ import annotations

import errno
import io
from collections.abc import Buffer
from typing import override

from .dbc import ensure
from .logging import StructuredLogger, get_logger
from .policy import DEFAULT_POLICY, ChunkPolicy, draw_chunk_size
from .randomness import RandomSource, default_random
from .streams import ByteSink

__all__ = ["ChunkedWriter"]


def _fully_consumed(writer: ChunkedWriter, data: Buffer, result: int) -> bool:
    return result == memoryview(data).nbytes


class ChunkedWriter(io.RawIOBase):
    """Wrap a byte sink and feed it each write in small random fragments.

    Every :meth:`write` is split into fragments of ``policy.write_min`` to
    ``policy.write_max`` bytes (0 to 4 by default), each passed to the sink
    in its own ``write`` call, zero-length fragments included. The call
    returns only once the whole input has been handed over, and always
    returns its full length.

    A sink exception aborts the call unchanged; fragments already delivered
    stay delivered. A short write from the sink is honored: the unaccepted
    tail is re-fragmented on the next iteration. ``None`` from an
    :class:`io.RawIOBase` sink means the write would block and raises
    :class:`BlockingIOError`; from any other sink it means the whole fragment
    was taken. A drawn size of 0 makes no
    progress, so with the default uniform generator a write of ``n`` bytes
    takes about ``n / 2`` sink calls but has no hard upper bound.

    Example::

        sink = io.BytesIO()
        with ChunkedWriter(sink) as writer:
            writer.write(b"This is my test data")
        assert sink.getvalue() == b"This is my test data"

    Closing the writer flushes the sink but leaves it open.
    """

    def __init__(
        self,
        sink: ByteSink,
        *,
        rng: RandomSource | None = None,
        policy: ChunkPolicy | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        super().__init__()
        for method in ("write", "flush"):
            if not callable(getattr(sink, method, None)):
                msg = f"{type(sink).__name__} has no {method}() method"
                raise TypeError(msg)
        self._sink = sink
        self._policy = policy if policy is not None else DEFAULT_POLICY
        self._rng = rng if rng is not None else default_random()
        self._logger = get_logger(
            __name__, logger_override=logger, context={"component": "chunked_writer"}
        )
        self._logger.debug(
            "Chunked writer created.",
            event="dribble.writer.created",
            context={"sink": type(sink).__name__},
        )

    @property
    def sink(self) -> ByteSink:
        """The wrapped sink."""
        return self._sink

    @property
    def policy(self) -> ChunkPolicy:
        """Chunk bounds in effect."""
        return self._policy

    @override
    def writable(self) -> bool:
        return True

    @override
    @ensure(_fully_consumed)
    def write(self, data: Buffer, /) -> int:
        """Hand ``data`` to the sink fragment by fragment.

        Returns:
            ``len(data)`` in bytes.

        Raises:
            ValueError: If the writer is closed.
            OSError: If the sink reports accepting more than it was given.
            BlockingIOError: If a raw, non-blocking sink returns ``None``.
                ``characters_written`` holds the bytes delivered so far.
        """
        if self.closed:
            msg = "I/O operation on closed file."
            raise ValueError(msg)

        with memoryview(data) as raw, raw.cast("B") as view:
            total = view.nbytes
            written = 0
            fragments = 0
            while written < total:
                size = min(
                    total - written,
                    draw_chunk_size(
                        self._rng, self._policy.write_min, self._policy.write_max
                    ),
                )
                accepted = self._sink.write(bytes(view[written : written + size]))
                fragments += 1
                if accepted is None:
                    if isinstance(self._sink, io.RawIOBase):
                        # Raw streams return None when the write would block.
                        raise BlockingIOError(
                            errno.EAGAIN,
                            "write could not complete without blocking",
                            written,
                        )
                    accepted = size
                elif not 0 <= accepted <= size:
                    msg = (
                        f"sink returned invalid length {accepted} "
                        f"(should be 0 <= n <= {size})"
                    )
                    raise OSError(msg)
                written += accepted

        self._logger.debug(
            "Wrote through sink.",
            event="dribble.writer.write",
            context={"bytes": total, "fragments": fragments},
        )
        return total

    @override
    def flush(self) -> None:
        """Forward to the sink's ``flush``."""
        if self.closed:
            msg = "I/O operation on closed file."
            raise ValueError(msg)
        self._sink.flush()
