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

"""Injectable randomness for chunk-size selection.

Adapters draw chunk sizes from a :class:`RandomSource` passed at
construction. :class:`random.Random` satisfies the protocol as-is, so a
seeded generator gives reproducible chunking::

    reader = ChunkedReader(source, rng=random.Random(1234))

When no generator is supplied, :func:`default_random` builds one. It is
seeded from ``DRIBBLE_SEED`` if that is set, otherwise from fresh entropy.
The seed is logged at DEBUG so a failing run can be replayed by exporting
it::

    DRIBBLE_SEED=0x5eed pytest tests/test_parser.py

For fully scripted draws see :class:`dribble.testing.ScriptedRandom`.
"""

from __future__ import annotations

import os
import random
import secrets
from collections.abc import Mapping
from typing import Final, Protocol, runtime_checkable

from .errors import SeedConfigurationError
from .logging import StructuredLogger, get_logger

__all__ = [
    "SEED_ENV",
    "RandomSource",
    "default_random",
    "resolve_seed",
]

SEED_ENV: Final[str] = "DRIBBLE_SEED"

logger: StructuredLogger = get_logger(__name__, context={"component": "randomness"})


@runtime_checkable
class RandomSource(Protocol):
    """Protocol for drawing integers from an inclusive range."""

    def randint(self, a: int, b: int) -> int:
        """Return an integer ``n`` with ``a <= n <= b``."""
        ...


def resolve_seed(env: Mapping[str, str] | None = None) -> int:
    """Return the seed for a default generator.

    Args:
        env: Environment mapping to consult. Defaults to ``os.environ``.

    Returns:
        The integer in ``DRIBBLE_SEED`` (any base accepted by ``int(x, 0)``),
        or 64 fresh random bits when the variable is unset or blank.

    Raises:
        SeedConfigurationError: If ``DRIBBLE_SEED`` is not an integer.
    """

    env = os.environ if env is None else env
    raw = env.get(SEED_ENV, "").strip()
    if not raw:
        return secrets.randbits(64)
    try:
        return int(raw, 0)
    except ValueError:
        msg = f"{SEED_ENV} must be an integer, got {raw!r}"
        raise SeedConfigurationError(msg) from None


def default_random(*, env: Mapping[str, str] | None = None) -> random.Random:
    """Return a freshly seeded :class:`random.Random` for one adapter."""

    env = os.environ if env is None else env
    seed = resolve_seed(env)
    logger.debug(
        "Seeded chunk-size generator.",
        event="dribble.random.seeded",
        context={
            "seed": seed,
            "origin": "env" if env.get(SEED_ENV, "").strip() else "entropy",
        },
    )
    return random.Random(seed)
