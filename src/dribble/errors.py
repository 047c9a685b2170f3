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

"""Base exception hierarchy for :mod:`dribble`.

The chunking adapters never raise errors of their own while moving bytes:
whatever the wrapped source or sink raises propagates unchanged. The classes
here cover the configuration surface only.
"""

from __future__ import annotations


class DribbleError(Exception):
    """Base class for all dribble exceptions.

    Catch this to handle any library-specific configuration problem while
    letting I/O errors from wrapped collaborators propagate normally.

    Example::

        try:
            policy = ChunkPolicy(read_min=0)
        except DribbleError as e:
            pytest.fail(f"bad fixture: {e}")

    Note:
        Subclasses also inherit from ``ValueError`` so they can be caught by
        handlers expecting standard validation errors.
    """


class ChunkPolicyError(DribbleError, ValueError):
    """Raised when a :class:`~dribble.policy.ChunkPolicy` has invalid bounds.

    Common causes:

    - A read minimum below 1, which would let the reader report a zero-length
      result that callers mistake for end-of-stream
    - A maximum smaller than its minimum
    - A write range of ``[0, 0]``, which can never make progress
    - A refill buffer smaller than one byte
    """


class SeedConfigurationError(DribbleError, ValueError):
    """Raised when ``DRIBBLE_SEED`` is set to something other than an integer."""


__all__ = [
    "ChunkPolicyError",
    "DribbleError",
    "SeedConfigurationError",
]
