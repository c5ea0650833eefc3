"""Tests for unit id generation."""

import re

from formations.ids import IdGenerator


def test_format():
    new_id = IdGenerator(seed=1, clock=lambda: 1700000000.5)()
    assert re.fullmatch(r"[0-9a-f]+-[0-9a-f]{8}", new_id)
    assert new_id.startswith(format(1700000000500, "x") + "-")


def test_unique_with_frozen_clock():
    gen = IdGenerator(seed=1, clock=lambda: 0.0)
    ids = [gen() for _ in range(1000)]
    assert len(set(ids)) == 1000


def test_reserved_ids_are_skipped():
    first = IdGenerator(seed=3, clock=lambda: 1.0)()
    gen = IdGenerator(seed=3, clock=lambda: 1.0)
    gen.reserve([first])
    assert gen() != first
