"""Unit tests for auth/challenges.py -- ChallengeStore.

Covers:
- issue() returns printable ids and challenges of the configured size
- ids are regenerated on collision
- the store never exceeds max_challenges and evicts oldest-first
- consume() removes; get() does not
"""

from __future__ import annotations

import itertools

from auth.challenges import MAX_CHALLENGES, ChallengeStore


class TestIssue:
    def test_sizes_and_alphabet(self):
        store = ChallengeStore(challenge_size=30)
        c = store.issue()
        assert len(c.challenge_id) == 30
        assert len(c.challenge) == 30
        assert c.challenge_id.isalnum()
        assert c.challenge.isalnum()

    def test_issued_at_from_clock(self):
        store = ChallengeStore(clock=lambda: 1234.5)
        assert store.issue().issued_at == 1234.5

    def test_default_capacity(self):
        assert ChallengeStore().max_challenges == MAX_CHALLENGES == 10_000

    def test_collision_regenerates_id(self):
        """The generator repeats "dup" -- the second challenge must get a new id."""
        values = iter(["dup", "c1", "dup", "dup", "fresh", "c2"])
        store = ChallengeStore(generator=lambda size: next(values))
        first = store.issue()
        second = store.issue()
        assert first.challenge_id == "dup"
        assert second.challenge_id == "fresh"
        assert second.challenge == "c2"
        assert len(store) == 2

    def test_ids_distinct(self):
        store = ChallengeStore()
        ids = {store.issue().challenge_id for _ in range(200)}
        assert len(ids) == 200


class TestEviction:
    def test_overflow_evicts_oldest(self):
        """Issuing max+1 challenges drops the first one and keeps the last."""
        store = ChallengeStore(max_challenges=5)
        issued = [store.issue() for _ in range(6)]
        assert len(store) == 5
        assert issued[0].challenge_id not in store
        assert issued[1].challenge_id in store
        assert issued[-1].challenge_id in store

    def test_never_exceeds_capacity(self):
        store = ChallengeStore(max_challenges=3)
        for _ in range(50):
            store.issue()
            assert len(store) <= 3

    def test_eviction_is_fifo_across_consumes(self):
        counter = itertools.count()
        store = ChallengeStore(max_challenges=3, generator=lambda size: f"v{next(counter)}")
        a = store.issue()
        b = store.issue()
        c = store.issue()
        store.consume(b.challenge_id)
        d = store.issue()  # room freed by consume, nothing evicted
        assert a.challenge_id in store
        e = store.issue()  # full again: a is the oldest
        assert a.challenge_id not in store
        for kept in (c, d, e):
            assert kept.challenge_id in store
        assert len(store) == 3


class TestLookup:
    def test_get_does_not_remove(self):
        store = ChallengeStore()
        c = store.issue()
        assert store.get(c.challenge_id) == c
        assert store.get(c.challenge_id) == c

    def test_consume_removes(self):
        store = ChallengeStore()
        c = store.issue()
        assert store.consume(c.challenge_id) == c
        assert store.consume(c.challenge_id) is None
        assert store.get(c.challenge_id) is None

    def test_unknown_id(self):
        store = ChallengeStore()
        assert store.get("nope") is None
        assert store.consume("nope") is None
