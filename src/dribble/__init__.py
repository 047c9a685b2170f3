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

"""Stress-test stream code by passing data through it in small random chunks.

:class:`ChunkedReader` wraps a byte source and returns 1 to 4 bytes per read.
:class:`ChunkedWriter` wraps a byte sink and splits every write into 0 to 4
byte fragments. Both are raw binary streams, so they drop in wherever the
wrapped object was used::

    import io

    from dribble import ChunkedReader, ChunkedWriter

    reader = ChunkedReader(io.BytesIO(b"This is my test data"))
    assert parse_header(reader) == expected  # sees every short-read boundary

    sink = io.BytesIO()
    ChunkedWriter(sink).write(b"This is my test data")
    assert sink.getvalue() == b"This is my test data"
"""

from __future__ import annotations

from .errors import ChunkPolicyError, DribbleError, SeedConfigurationError
from .policy import DEFAULT_POLICY, ChunkPolicy, draw_chunk_size
from .randomness import RandomSource, default_random
from .reader import ChunkedReader
from .streams import ByteSink, ByteSource, ReadableSource
from .writer import ChunkedWriter

__all__ = [
    "DEFAULT_POLICY",
    "ByteSink",
    "ByteSource",
    "ChunkPolicy",
    "ChunkPolicyError",
    "ChunkedReader",
    "ChunkedWriter",
    "DribbleError",
    "RandomSource",
    "ReadableSource",
    "SeedConfigurationError",
    "default_random",
    "draw_chunk_size",
]
