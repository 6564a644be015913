from datetime import date, timedelta

import pytest
from sqlmodel import Session

from hanmo.core.exceptions import BusinessRuleViolation, InsufficientBalanceError
from hanmo.models import PointTransactionType
from hanmo.services import points
from hanmo.services.points import check_in_reward, current_streak
from hanmo.tests.utils.user import create_random_user

TODAY = date(2024, 3, 10)


def days_ago(*offsets: int) -> list[date]:
    return [TODAY - timedelta(days=n) for n in offsets]


def test_current_streak_from_today() -> None:
    assert current_streak(days_ago(0, 1, 2), TODAY) == 3


def test_current_streak_from_yesterday() -> None:
    assert current_streak(days_ago(1, 2), TODAY) == 2


def test_current_streak_broken() -> None:
    assert current_streak(days_ago(0, 1, 3, 4), TODAY) == 2
    assert current_streak(days_ago(2, 3), TODAY) == 0
    assert current_streak([], TODAY) == 0


def test_reward_uses_best_reached_rule(db: Session) -> None:
    # Seeded rules: 1 -> 10, 3 -> 20, 7 -> 30, 14 -> 50, 30 -> 100
    assert check_in_reward(db, 1) == 10
    assert check_in_reward(db, 2) == 10
    assert check_in_reward(db, 3) == 20
    assert check_in_reward(db, 13) == 30
    assert check_in_reward(db, 365) == 100


def test_spend_points(db: Session) -> None:
    user = create_random_user(db)
    points.add_points(db, user.id, 40, "test")

    transaction = points.spend_points(db, user.id, 15, "test", "Shop item")
    assert transaction.type == PointTransactionType.SPEND
    assert transaction.balance_before == 40
    assert transaction.balance_after == 25

    with pytest.raises(InsufficientBalanceError):
        points.spend_points(db, user.id, 26, "test")
    with pytest.raises(BusinessRuleViolation):
        points.spend_points(db, user.id, 0, "test")
