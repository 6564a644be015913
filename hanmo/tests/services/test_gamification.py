import pytest

from hanmo.services.gamification import (
    calculate_level,
    calculate_level_progress,
    level_info,
    next_level_points,
    streak_bonus,
)


@pytest.mark.parametrize(
    ("points", "level"),
    [(0, 1), (99, 1), (100, 2), (249, 2), (250, 3), (50000, 11), (999999, 11)],
)
def test_calculate_level(points: int, level: int) -> None:
    assert calculate_level(points) == level


def test_level_progress() -> None:
    assert calculate_level_progress(0) == 0
    assert calculate_level_progress(50) == 50
    assert calculate_level_progress(175) == 50
    # Max level is always complete
    assert calculate_level_progress(60000) == 100


def test_next_level_points() -> None:
    assert next_level_points(0) == 100
    assert next_level_points(120) == 250
    assert next_level_points(60000) == 50000


def test_level_info() -> None:
    info = level_info(300)
    assert info.level == 3
    assert info.current_level_points == 250
    assert info.next_level_points == 500
    assert info.level_progress == 20


@pytest.mark.parametrize(
    ("streak", "bonus", "reason"),
    [
        (1, 0, None),
        (6, 0, None),
        (7, 10, "7 day streak bonus"),
        (14, 20, "14 day streak bonus"),
        (45, 40, "30 day streak bonus"),
        (100, 90, "100 day streak bonus"),
    ],
)
def test_streak_bonus(streak: int, bonus: int, reason: str | None) -> None:
    assert streak_bonus(10, streak) == (bonus, reason)
