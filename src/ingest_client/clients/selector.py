"""Endpoint selection for load-balanced requests."""

import random
from collections.abc import Sequence

import attrs


@attrs.define(frozen=False, slots=True)
class EndpointSelector:
    """Picks one endpoint uniformly at random from a candidate sequence.

    Selection keeps no state between calls. Random rather than round-robin
    selection keeps independent client instances from all starting on the
    same endpoint.

    Attributes:
        rng: Random source. Inject a seeded `random.Random` for reproducible picks.
    """

    rng: random.Random = attrs.field(factory=random.Random)

    def pick(self, candidates: Sequence[str]) -> str | None:
        """Return one of `candidates`, or None when the sequence is empty."""
        count = len(candidates)
        if count == 0:
            return None
        if count == 1:
            return candidates[0]
        return candidates[self.rng.randrange(count)]
