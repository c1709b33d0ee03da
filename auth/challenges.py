"""
auth/challenges.py -- Bounded FIFO cache of outstanding login challenges.

An OrderedDict serves as both the lookup map and the eviction queue: keys
stay in insertion order, so the oldest challenge is always at the front and
consume() removes an entry from both views at once.

Known limitation (deliberate): a failed login does not remove its challenge.
The client may retry with the same challenge_id until the entry is consumed
by a successful login or falls off the end of the queue.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

from auth.hashing import DEFAULT_TOKEN_SIZE, random_token
from auth.models import Challenge

logger = logging.getLogger("sessiongate.auth.challenges")

MAX_CHALLENGES = 10_000


class ChallengeStore:
    def __init__(
        self,
        max_challenges: int = MAX_CHALLENGES,
        challenge_size: int = DEFAULT_TOKEN_SIZE,
        clock: Callable[[], float] = time.time,
        generator: Callable[[int], str] = random_token,
    ) -> None:
        self.max_challenges = max_challenges
        self.challenge_size = challenge_size
        self._clock = clock
        self._generate = generator
        self._challenges: OrderedDict[str, Challenge] = OrderedDict()

    def issue(self) -> Challenge:
        """Create, record and return a fresh challenge.

        The id is regenerated until it does not collide with a tracked one.
        When the store is full the single oldest challenge is evicted first,
        so len(self) never exceeds max_challenges.
        """
        challenge_id = self._generate(self.challenge_size)
        while challenge_id in self._challenges:
            challenge_id = self._generate(self.challenge_size)
        challenge = Challenge(
            challenge_id=challenge_id,
            challenge=self._generate(self.challenge_size),
            issued_at=self._clock(),
        )
        if len(self._challenges) >= self.max_challenges:
            evicted, _ = self._challenges.popitem(last=False)
            logger.debug("challenge store full, evicted %s", evicted)
        self._challenges[challenge_id] = challenge
        return challenge

    def get(self, challenge_id: str) -> Optional[Challenge]:
        """Return the tracked challenge without removing it."""
        return self._challenges.get(challenge_id)

    def consume(self, challenge_id: str) -> Optional[Challenge]:
        """Remove and return the challenge. Only a successful login calls this."""
        return self._challenges.pop(challenge_id, None)

    def __len__(self) -> int:
        return len(self._challenges)

    def __contains__(self, challenge_id: object) -> bool:
        return challenge_id in self._challenges
