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

"""Chunk-size bounds shared by the reader and writer adapters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .dbc import require
from .errors import ChunkPolicyError
from .randomness import RandomSource

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_POLICY",
    "ChunkPolicy",
    "draw_chunk_size",
]

#: Capacity of the reader's private refill buffer.
DEFAULT_BUFFER_SIZE: Final[int] = 64


@dataclass(frozen=True, slots=True)
class ChunkPolicy:
    """Inclusive chunk-size bounds for the adapters.

    The defaults hand callers 1 to 4 bytes per read, split writes into
    fragments of 0 to 4 bytes, and refill the reader 64 bytes at a time, so
    one source read serves up to 16 caller reads.

    Args:
        read_min: Smallest chunk returned by a read that has data. At least 1.
        read_max: Largest chunk returned by a read.
        write_min: Smallest fragment issued to the sink. 0 allows empty writes.
        write_max: Largest fragment issued to the sink. At least 1.
        buffer_size: Capacity of the reader's refill buffer.

    Raises:
        ChunkPolicyError: If any bound is out of range.
    """

    read_min: int = 1
    read_max: int = 4
    write_min: int = 0
    write_max: int = 4
    buffer_size: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self) -> None:
        if self.read_min < 1:
            msg = f"read_min must be at least 1, got {self.read_min}"
            raise ChunkPolicyError(msg)
        if self.read_max < self.read_min:
            msg = f"read_max ({self.read_max}) is below read_min ({self.read_min})"
            raise ChunkPolicyError(msg)
        if self.write_min < 0:
            msg = f"write_min must be non-negative, got {self.write_min}"
            raise ChunkPolicyError(msg)
        if self.write_max < max(self.write_min, 1):
            msg = (
                f"write_max must be at least max(write_min, 1), got {self.write_max}"
            )
            raise ChunkPolicyError(msg)
        if self.buffer_size < 1:
            msg = f"buffer_size must be at least 1, got {self.buffer_size}"
            raise ChunkPolicyError(msg)

    @classmethod
    def byte_at_a_time(cls) -> ChunkPolicy:
        """Deliver every read and every write fragment as a single byte."""
        return cls(read_min=1, read_max=1, write_min=1, write_max=1)


DEFAULT_POLICY: Final[ChunkPolicy] = ChunkPolicy()


@require(lambda rng, low, high: 0 <= low <= high)
def draw_chunk_size(rng: RandomSource, low: int, high: int) -> int:
    """Draw one chunk size from ``[low, high]`` inclusive.

    Raises:
        ValueError: If ``rng`` returns a value outside the range.
    """

    size = rng.randint(low, high)
    if not low <= size <= high:
        msg = f"Random source returned {size}, outside [{low}, {high}]"
        raise ValueError(msg)
    return size
