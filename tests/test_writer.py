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

"""Tests for :mod:`dribble.writer`."""

from __future__ import annotations

import array
import io
import logging
import os
import random
from collections.abc import Buffer

import pytest

from dribble import ChunkedReader, ChunkedWriter, ChunkPolicy
from dribble.logging import get_logger
from dribble.testing import FailingSink, RecordingSink, ScriptedRandom

SAMPLE = b"This is my test data"


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class TestCompleteness:
    """Fragments reassemble into exactly what was written."""

    def test_fragments_concatenate_to_input(self, rng: random.Random) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=rng)

        assert writer.write(SAMPLE) == len(SAMPLE)
        assert sink.content == SAMPLE

    def test_fragments_are_at_most_four_bytes(self, rng: random.Random) -> None:
        sink = RecordingSink()
        ChunkedWriter(sink, rng=rng).write(bytes(range(256)) * 4)
        assert sink.fragments
        assert all(0 <= len(fragment) <= 4 for fragment in sink.fragments)

    def test_zero_length_fragments_reach_sink(self) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=ScriptedRandom([3, 0, 4]))

        assert writer.write(b"abcdefg") == 7
        assert sink.fragments == [b"abc", b"", b"defg"]

    def test_last_fragment_trimmed_to_remaining(self) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=ScriptedRandom([4, 4]))

        writer.write(b"abcdef")
        assert sink.fragments == [b"abcd", b"ef"]

    def test_draws_use_write_range(self) -> None:
        scripted = ScriptedRandom([2, 2])
        ChunkedWriter(RecordingSink(), rng=scripted).write(b"abcd")
        assert scripted.calls == [(0, 4), (0, 4)]

    def test_empty_write_makes_no_calls(self) -> None:
        sink = RecordingSink()
        scripted = ScriptedRandom([1])
        writer = ChunkedWriter(sink, rng=scripted)

        assert writer.write(b"") == 0
        assert sink.fragments == []
        assert scripted.calls == []

    def test_successive_writes_append(self, rng: random.Random) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=rng)
        writer.write(b"This is ")
        writer.write(b"my test data")
        assert sink.content == SAMPLE

    @pytest.mark.parametrize(
        "payload",
        [bytearray(SAMPLE), memoryview(SAMPLE), array.array("H", [1, 2, 3])],
        ids=["bytearray", "memoryview", "array"],
    )
    def test_accepts_bytes_like(self, payload: Buffer, rng: random.Random) -> None:
        sink = RecordingSink()
        written = ChunkedWriter(sink, rng=rng).write(payload)
        assert written == memoryview(payload).nbytes
        assert sink.content == bytes(memoryview(payload))

    def test_fragments_are_independent_copies(self) -> None:
        sink = RecordingSink()
        payload = bytearray(b"abcd")
        ChunkedWriter(sink, rng=ScriptedRandom([4])).write(payload)
        payload[:] = b"zzzz"
        assert sink.fragments == [b"abcd"]

    def test_byte_at_a_time_policy(self, rng: random.Random) -> None:
        sink = RecordingSink()
        ChunkedWriter(sink, rng=rng, policy=ChunkPolicy.byte_at_a_time()).write(
            SAMPLE
        )
        assert sink.fragments == [bytes([b]) for b in SAMPLE]

    def test_busy_retry_on_zero_draws(self) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=ScriptedRandom([0, 0, 0, 0, 0, 2]))

        assert writer.write(b"ab") == 2
        assert sink.fragments == [b"", b"", b"", b"", b"", b"ab"]


class TestShortWrites:
    """A sink accepting less than offered gets the rest re-fragmented."""

    def test_unaccepted_tail_is_resent(self) -> None:
        sink = RecordingSink(max_accept=1)
        writer = ChunkedWriter(sink, rng=ScriptedRandom([4], repeat=True))

        assert writer.write(b"abcd") == 4
        assert sink.fragments == [b"a", b"b", b"c", b"d"]

    def test_sink_returning_none_counts_as_full(self) -> None:
        received: list[bytes] = []

        class SilentSink:
            def write(self, data: bytes) -> None:
                received.append(bytes(data))

            def flush(self) -> None:
                pass

        writer = ChunkedWriter(SilentSink(), rng=ScriptedRandom([3, 3]))
        assert writer.write(b"abcdef") == 6
        assert received == [b"abc", b"def"]

    def test_raw_sink_returning_none_would_block(self) -> None:
        class StalledRawSink(io.RawIOBase):
            def __init__(self) -> None:
                super().__init__()
                self.received = bytearray()

            def writable(self) -> bool:
                return True

            def write(self, data: Buffer, /) -> int | None:
                if len(self.received) >= 4:
                    return None
                self.received += bytes(data)
                return memoryview(data).nbytes

        sink = StalledRawSink()
        writer = ChunkedWriter(sink, rng=ScriptedRandom([2], repeat=True))

        with pytest.raises(BlockingIOError) as excinfo:
            writer.write(b"abcdefgh")

        assert excinfo.value.characters_written == 4
        assert bytes(sink.received) == b"abcd"

    def test_non_blocking_pipe_reports_delivered_bytes(
        self, rng: random.Random
    ) -> None:
        payload = bytes(range(256)) * 4096
        read_fd, write_fd = os.pipe()
        os.set_blocking(write_fd, False)
        with (
            open(read_fd, "rb", buffering=0) as read_end,
            open(write_fd, "wb", buffering=0) as write_end,
        ):
            writer = ChunkedWriter(write_end, rng=rng)

            with pytest.raises(BlockingIOError) as excinfo:
                writer.write(payload)
            write_end.close()

            delivered = read_end.read()
            assert 0 < excinfo.value.characters_written < len(payload)
            assert delivered == payload[: excinfo.value.characters_written]

    def test_overreporting_sink_raises(self) -> None:
        class BoastfulSink:
            def write(self, data: bytes) -> int:
                return len(data) + 1

            def flush(self) -> None:
                pass

        writer = ChunkedWriter(BoastfulSink(), rng=ScriptedRandom([2]))
        with pytest.raises(OSError, match="invalid length"):
            writer.write(b"ab")


class TestErrorPropagation:
    """Sink failures abort the write without rollback or retry."""

    def test_failure_mid_write_keeps_delivered_prefix(self) -> None:
        sink = FailingSink(fail_on=3)
        writer = ChunkedWriter(sink, rng=ScriptedRandom([2], repeat=True))

        with pytest.raises(OSError, match="injected failure"):
            writer.write(b"abcdefgh")
        assert sink.content == b"abcd"
        assert sink.calls == 3

    def test_exception_instance_is_unchanged(self) -> None:
        error = BrokenPipeError("reader closed")
        sink = FailingSink(fail_on=1, error=error)
        writer = ChunkedWriter(sink, rng=ScriptedRandom([1]))

        with pytest.raises(BrokenPipeError) as excinfo:
            writer.write(b"a")
        assert excinfo.value is error

    def test_flush_failure_propagates(self, rng: random.Random) -> None:
        class BrokenFlushSink(RecordingSink):
            def flush(self) -> None:
                raise OSError("disk full")

        writer = ChunkedWriter(BrokenFlushSink(), rng=rng)
        with pytest.raises(OSError, match="disk full"):
            writer.flush()


class TestFlushAndClose:
    """Flush forwards to the sink; close never closes it."""

    def test_flush_forwards(self, rng: random.Random) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=rng)
        writer.flush()
        assert sink.flush_count == 1

    def test_write_does_not_flush(self, rng: random.Random) -> None:
        sink = RecordingSink()
        ChunkedWriter(sink, rng=rng).write(SAMPLE)
        assert sink.flush_count == 0

    def test_close_flushes_but_leaves_sink_open(self, rng: random.Random) -> None:
        sink = io.BytesIO()
        with ChunkedWriter(sink, rng=rng) as writer:
            writer.write(SAMPLE)
        assert writer.closed
        assert not sink.closed
        assert sink.getvalue() == SAMPLE

    def test_write_after_close_raises(self, rng: random.Random) -> None:
        writer = ChunkedWriter(RecordingSink(), rng=rng)
        writer.close()
        with pytest.raises(ValueError, match="closed"):
            writer.write(b"a")

    def test_flush_after_close_raises(self, rng: random.Random) -> None:
        writer = ChunkedWriter(RecordingSink(), rng=rng)
        writer.close()
        with pytest.raises(ValueError, match="closed"):
            writer.flush()


class TestSurface:
    """The adapter behaves like a raw binary stream."""

    def test_stream_capabilities(self, rng: random.Random) -> None:
        writer = ChunkedWriter(RecordingSink(), rng=rng)
        assert writer.writable()
        assert not writer.readable()
        assert not writer.seekable()

    def test_exposes_sink_and_policy(self, rng: random.Random) -> None:
        sink = RecordingSink()
        writer = ChunkedWriter(sink, rng=rng)
        assert writer.sink is sink
        assert writer.policy == ChunkPolicy()

    @pytest.mark.parametrize("missing", ["write", "flush"])
    def test_rejects_incomplete_sink(self, missing: str) -> None:
        class PartialSink:
            def write(self, data: bytes) -> int:
                return len(data)

            def flush(self) -> None:
                pass

        sink = PartialSink()
        setattr(sink, missing, None)
        with pytest.raises(TypeError, match=f"no {missing}"):
            ChunkedWriter(sink)

    def test_buffered_writer_over_adapter(self, rng: random.Random) -> None:
        sink = RecordingSink()
        buffered = io.BufferedWriter(ChunkedWriter(sink, rng=rng))
        buffered.write(SAMPLE)
        buffered.flush()
        assert sink.content == SAMPLE
        assert all(len(fragment) <= 4 for fragment in sink.fragments)

        buffered.close()
        assert sink.flush_count >= 1

    def test_pipe_ends_wrapped_independently(self, rng: random.Random) -> None:
        read_fd, write_fd = os.pipe()
        with (
            open(read_fd, "rb", buffering=0) as read_end,
            open(write_fd, "wb", buffering=0) as write_end,
        ):
            writer = ChunkedWriter(write_end, rng=rng)
            reader = ChunkedReader(read_end, rng=rng)

            writer.write(SAMPLE)
            writer.close()
            write_end.close()

            assert reader.read() == SAMPLE

    def test_logs_fragment_count(self) -> None:
        logger = get_logger("tests.writer.trace")
        handler = _CaptureHandler()
        logger.logger.addHandler(handler)
        logger.logger.setLevel(logging.DEBUG)
        try:
            writer = ChunkedWriter(
                RecordingSink(), rng=ScriptedRandom([1, 0, 2]), logger=logger
            )
            writer.write(b"abc")
        finally:
            logger.logger.removeHandler(handler)
            logger.logger.setLevel(logging.NOTSET)

        events = [getattr(record, "event", None) for record in handler.records]
        assert events == ["dribble.writer.created", "dribble.writer.write"]
        assert getattr(handler.records[-1], "context", None) == {
            "component": "chunked_writer",
            "bytes": 3,
            "fragments": 3,
        }
