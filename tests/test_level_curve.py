from __future__ import annotations

import math

from questlog_rpg import XpConfig, level_from_xp, level_progress, xp_required_for_level


def _naive_level(xp: int, *, cap: int = 99) -> int:
    level = 1
    while level < cap and xp >= xp_required_for_level(level + 1):
        level += 1
    return level


def test_required_xp_matches_table() -> None:
    assert xp_required_for_level(1) == 0
    assert xp_required_for_level(2) == 100
    assert xp_required_for_level(3) == 240
    assert xp_required_for_level(4) == 420
    assert xp_required_for_level(5) == 640


def test_required_xp_for_degenerate_levels_is_zero() -> None:
    assert xp_required_for_level(0) == 0
    assert xp_required_for_level(-3) == 0
    assert xp_required_for_level(float("nan")) == 0


def test_required_xp_is_strictly_increasing() -> None:
    previous = xp_required_for_level(1)
    for level in range(2, 150):
        current = xp_required_for_level(level)
        assert current > previous
        previous = current


def test_level_from_xp_boundaries() -> None:
    assert level_from_xp(0) == 1
    assert level_from_xp(99) == 1
    assert level_from_xp(100) == 2
    assert level_from_xp(239) == 2
    assert level_from_xp(240) == 3
    assert level_from_xp(419) == 3
    assert level_from_xp(420) == 4


def test_level_from_xp_rejects_non_numbers() -> None:
    assert level_from_xp(-50) == 1
    assert level_from_xp(float("nan")) == 1
    assert level_from_xp(float("inf")) == 1
    assert level_from_xp("500") == 1
    assert level_from_xp(None) == 1
    assert level_from_xp(True) == 1


def test_level_from_xp_agrees_with_linear_scan() -> None:
    for xp in range(0, 6000, 7):
        level = level_from_xp(xp)
        assert level == _naive_level(xp)
        assert xp_required_for_level(level) <= xp
        assert xp < xp_required_for_level(level + 1)


def test_level_is_capped() -> None:
    cap_xp = xp_required_for_level(99)
    assert cap_xp == 199_920
    assert level_from_xp(cap_xp - 1) == 98
    assert level_from_xp(cap_xp) == 99
    assert level_from_xp(10**12) == 99


def test_custom_curve_and_cap() -> None:
    cfg = XpConfig(level_base_requirement=10, level_step_requirement=0, level_cap=5)
    assert xp_required_for_level(3, config=cfg) == 20
    assert level_from_xp(25, config=cfg) == 3
    assert level_from_xp(1_000, config=cfg) == 5


def test_progress_at_level_start() -> None:
    p = level_progress(2, 100)
    assert p.xp_into_level == 0
    assert p.xp_for_level == 140
    assert p.xp_to_next == 140
    assert p.progress == 0.0


def test_progress_midway() -> None:
    p = level_progress(1, 50).as_dict()
    assert p == {"xp_into_level": 50, "xp_for_level": 100, "xp_to_next": 50, "progress": 0.5}


def test_progress_sanitizes_inputs() -> None:
    p = level_progress(0, -5)
    assert (p.xp_into_level, p.xp_for_level, p.xp_to_next) == (0, 100, 100)

    p = level_progress(float("nan"), float("nan"))
    assert (p.xp_into_level, p.xp_for_level, p.xp_to_next) == (0, 100, 100)


def test_progress_stays_bounded_for_inconsistent_pairs() -> None:
    over = level_progress(1, 1000)
    assert over.xp_into_level == 1000
    assert over.xp_to_next == 0
    assert over.progress == 1.0

    under = level_progress(3, 10)
    assert under.xp_into_level == 0
    assert under.xp_to_next == 410
    assert under.progress == 0.0


def test_progress_invariants_for_consistent_pairs() -> None:
    for xp in range(0, 3000, 13):
        level = level_from_xp(xp)
        p = level_progress(level, xp)
        assert p.xp_for_level >= 1
        assert p.xp_into_level + p.xp_to_next == p.xp_for_level
        assert 0.0 <= p.progress <= 1.0
        assert math.isclose(p.progress, p.xp_into_level / p.xp_for_level)
