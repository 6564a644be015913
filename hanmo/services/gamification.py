"""
Game sign-in, levels and achievements.

Game points live in ``UserPointsSummary`` and are separate from the
spendable check-in points in ``UserPoints``.
"""

import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from hanmo.core.config import settings
from hanmo.core.exceptions import EntityAlreadyExistsError, EntityNotFoundError
from hanmo.core.observability import POINT_OPERATIONS, get_logger
from hanmo.models import (
    Achievement,
    AchievementConditionType,
    AchievementCreate,
    AchievementPublic,
    AchievementStats,
    AchievementUpdate,
    Comic,
    ComicLike,
    Couplet,
    CoupletLike,
    DailySignin,
    DailySigninPublic,
    GameProfile,
    LevelInfo,
    PointRecord,
    SigninResult,
    SigninStatus,
    UserAchievement,
    UserAchievementPublic,
    UserPointsSummary,
    UserPointsSummaryPublic,
    utcnow,
)

logger = get_logger(__name__)

LEVEL_THRESHOLDS = [0, 100, 250, 500, 1000, 2000, 4000, 8000, 15000, 30000, 50000]
# streak reached -> multiplier on the base sign-in points
STREAK_MULTIPLIERS = {7: 2, 14: 3, 30: 5, 100: 10}
SIGNIN_HISTORY_DAYS = 30
RECENT_ACHIEVEMENTS = 5


def calculate_level(total_points: int) -> int:
    return max(1, sum(1 for threshold in LEVEL_THRESHOLDS if threshold <= total_points))


def calculate_level_progress(total_points: int) -> int:
    level = calculate_level(total_points)
    if level >= len(LEVEL_THRESHOLDS):
        return 100
    current = LEVEL_THRESHOLDS[level - 1]
    following = LEVEL_THRESHOLDS[level]
    return int((total_points - current) * 100 / (following - current))


def next_level_points(total_points: int) -> int:
    level = calculate_level(total_points)
    if level >= len(LEVEL_THRESHOLDS):
        return LEVEL_THRESHOLDS[-1]
    return LEVEL_THRESHOLDS[level]


def level_info(total_points: int) -> LevelInfo:
    level = calculate_level(total_points)
    return LevelInfo(
        level=level,
        total_points=total_points,
        level_progress=calculate_level_progress(total_points),
        next_level_points=next_level_points(total_points),
        current_level_points=LEVEL_THRESHOLDS[level - 1],
    )


def streak_bonus(base_points: int, streak: int) -> tuple[int, str | None]:
    bonus, reason = 0, None
    for days, multiplier in sorted(STREAK_MULTIPLIERS.items()):
        if streak >= days:
            bonus = base_points * (multiplier - 1)
            reason = f"{days} day streak bonus"
    return bonus, reason


def get_or_create_summary(session: Session, user_id: uuid.UUID) -> UserPointsSummary:
    summary = session.exec(
        select(UserPointsSummary)
        .where(UserPointsSummary.user_id == user_id)
        .with_for_update()
    ).first()
    if summary is None:
        summary = UserPointsSummary(user_id=user_id)
        session.add(summary)
        session.flush()
    return summary


def award_points(
    session: Session,
    summary: UserPointsSummary,
    points: int,
    point_type: str,
    *,
    source_id: int | None = None,
    description: str | None = None,
) -> None:
    summary.total_points += points
    summary.available_points += points
    summary.level = calculate_level(summary.total_points)
    summary.level_progress = calculate_level_progress(summary.total_points)
    summary.next_level_points = next_level_points(summary.total_points)
    session.add(summary)
    session.add(
        PointRecord(
            user_id=summary.user_id,
            point_type=point_type,
            points=points,
            source=point_type,
            source_id=source_id,
            description=description,
        )
    )
    POINT_OPERATIONS.labels(operation="earn", source=point_type).inc()


def signin(session: Session, user_id: uuid.UUID) -> SigninResult:
    today = utcnow().date()
    already = session.exec(
        select(DailySignin.id).where(
            DailySignin.user_id == user_id, DailySignin.signin_date == today
        )
    ).first()
    if already:
        raise EntityAlreadyExistsError("Already signed in today")

    summary = get_or_create_summary(session, user_id)
    if summary.last_signin_at == today - timedelta(days=1):
        streak = summary.streak + 1
    else:
        streak = 1

    base = settings.SIGNIN_BASE_POINTS
    bonus, reason = streak_bonus(base, streak)
    record = DailySignin(
        user_id=user_id,
        signin_date=today,
        points=base,
        streak=streak,
        bonus_points=bonus,
        bonus_reason=reason,
    )
    session.add(record)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise EntityAlreadyExistsError("Already signed in today")

    summary.streak = streak
    summary.longest_streak = max(summary.longest_streak, streak)
    summary.last_signin_at = today
    description = f"Daily sign-in + {reason}" if reason else "Daily sign-in"
    award_points(
        session, summary, base + bonus, "signin", source_id=record.id, description=description
    )
    session.flush()

    new_achievements = check_achievements(session, user_id)
    session.commit()
    session.refresh(summary)
    logger.info(
        "Game sign-in",
        user_id=str(user_id),
        streak=streak,
        points=base + bonus,
        achievements=len(new_achievements),
    )

    total = base + bonus
    message = f"Signed in, +{total} points"
    if reason:
        message = f"{message} ({reason})"
    return SigninResult(
        message=message,
        points=base,
        bonus_points=bonus,
        bonus_reason=reason,
        streak=streak,
        summary=UserPointsSummaryPublic.model_validate(summary),
        new_achievements=[AchievementPublic.model_validate(a) for a in new_achievements],
    )


def get_signin_status(session: Session, user_id: uuid.UUID) -> SigninStatus:
    today = utcnow().date()
    summary = get_or_create_summary(session, user_id)
    session.commit()
    history = session.exec(
        select(DailySignin)
        .where(DailySignin.user_id == user_id)
        .order_by(col(DailySignin.signin_date).desc())
        .limit(SIGNIN_HISTORY_DAYS)
    ).all()
    return SigninStatus(
        signed_in_today=bool(history) and history[0].signin_date == today,
        summary=UserPointsSummaryPublic.model_validate(summary),
        history=[DailySigninPublic.model_validate(h) for h in history],
    )


def condition_metric(
    session: Session, user_id: uuid.UUID, condition_type: AchievementConditionType
) -> int:
    if condition_type == AchievementConditionType.SIGNIN_STREAK:
        return get_or_create_summary(session, user_id).streak
    if condition_type == AchievementConditionType.TOTAL_POINTS:
        return get_or_create_summary(session, user_id).total_points
    if condition_type == AchievementConditionType.COUPLETS_CREATED:
        return session.exec(
            select(func.count()).select_from(Couplet).where(Couplet.author_id == user_id)
        ).one()
    if condition_type == AchievementConditionType.LIKES_RECEIVED:
        couplet_likes = session.exec(
            select(func.count())
            .select_from(CoupletLike)
            .join(Couplet, col(Couplet.id) == CoupletLike.couplet_id)
            .where(Couplet.author_id == user_id)
        ).one()
        comic_likes = session.exec(
            select(func.count())
            .select_from(ComicLike)
            .join(Comic, col(Comic.id) == ComicLike.comic_id)
            .where(Comic.author_id == user_id)
        ).one()
        return couplet_likes + comic_likes
    return 0


def _parse_condition(achievement: Achievement) -> tuple[AchievementConditionType, int] | None:
    condition: dict[str, Any] = achievement.condition or {}
    try:
        return AchievementConditionType(condition.get("type")), int(condition.get("target", 1))
    except (TypeError, ValueError):
        logger.warning("Achievement has an unknown condition", achievement_id=achievement.id)
        return None


def check_achievements(session: Session, user_id: uuid.UUID) -> list[Achievement]:
    """
    Grant every active achievement whose condition the user now meets.

    Reward points can unlock points based achievements, so the check repeats
    until nothing new is granted. Flushes only; the caller commits.
    """
    granted: list[Achievement] = []
    while True:
        newly = _check_once(session, user_id)
        if not newly:
            return granted
        granted.extend(newly)


def _check_once(session: Session, user_id: uuid.UUID) -> list[Achievement]:
    progress_rows = {
        ua.achievement_id: ua
        for ua in session.exec(
            select(UserAchievement).where(UserAchievement.user_id == user_id)
        ).all()
    }
    achievements = session.exec(
        select(Achievement)
        .where(col(Achievement.is_active).is_(True))
        .order_by(col(Achievement.order_index), col(Achievement.id))
    ).all()

    metrics: dict[AchievementConditionType, int] = {}
    newly: list[Achievement] = []
    for achievement in achievements:
        user_achievement = progress_rows.get(achievement.id)
        if user_achievement and user_achievement.is_completed:
            continue
        parsed = _parse_condition(achievement)
        if parsed is None:
            continue
        condition_type, target = parsed
        if condition_type not in metrics:
            metrics[condition_type] = condition_metric(session, user_id, condition_type)
        value = metrics[condition_type]

        if user_achievement is None:
            user_achievement = UserAchievement(
                user_id=user_id, achievement_id=achievement.id
            )
        user_achievement.max_progress = target
        user_achievement.progress = min(value, target)
        if value >= target:
            user_achievement.is_completed = True
            user_achievement.completed_at = utcnow()
            reward = int((achievement.rewards or {}).get("points", 0))
            if reward > 0:
                award_points(
                    session,
                    get_or_create_summary(session, user_id),
                    reward,
                    "achievement",
                    source_id=achievement.id,
                    description=f"Achievement: {achievement.name}",
                )
            newly.append(achievement)
            logger.info(
                "Achievement granted",
                user_id=str(user_id),
                achievement_id=achievement.id,
                reward_points=reward,
            )
        session.add(user_achievement)
    session.flush()
    return newly


def _user_achievement_public(
    user_achievement: UserAchievement, achievement: Achievement
) -> UserAchievementPublic:
    return UserAchievementPublic(
        id=user_achievement.id,
        achievement=AchievementPublic.model_validate(achievement),
        progress=user_achievement.progress,
        max_progress=user_achievement.max_progress,
        is_completed=user_achievement.is_completed,
        completed_at=user_achievement.completed_at,
        notified=user_achievement.notified,
    )


def list_user_achievements(
    session: Session, user_id: uuid.UUID, *, completed: bool | None = None
) -> list[UserAchievementPublic]:
    statement = (
        select(UserAchievement, Achievement)
        .join(Achievement, col(Achievement.id) == UserAchievement.achievement_id)
        .where(UserAchievement.user_id == user_id)
    )
    if completed is not None:
        statement = statement.where(UserAchievement.is_completed == completed)
    statement = statement.order_by(
        col(UserAchievement.completed_at).desc(), col(Achievement.order_index)
    )
    return [_user_achievement_public(ua, a) for ua, a in session.exec(statement).all()]


def unread_achievements(session: Session, user_id: uuid.UUID) -> list[UserAchievementPublic]:
    statement = (
        select(UserAchievement, Achievement)
        .join(Achievement, col(Achievement.id) == UserAchievement.achievement_id)
        .where(
            UserAchievement.user_id == user_id,
            col(UserAchievement.is_completed).is_(True),
            col(UserAchievement.notified).is_(False),
        )
        .order_by(col(UserAchievement.completed_at).desc())
    )
    return [_user_achievement_public(ua, a) for ua, a in session.exec(statement).all()]


def mark_notified(
    session: Session, user_id: uuid.UUID, achievement_ids: list[int] | None = None
) -> int:
    """Mark completed achievements as notified; all of them when no ids are given."""
    statement = select(UserAchievement).where(
        UserAchievement.user_id == user_id,
        col(UserAchievement.is_completed).is_(True),
        col(UserAchievement.notified).is_(False),
    )
    if achievement_ids is not None:
        statement = statement.where(
            col(UserAchievement.achievement_id).in_(achievement_ids)
        )
    rows = session.exec(statement).all()
    for row in rows:
        row.notified = True
        session.add(row)
    session.commit()
    return len(rows)


def achievement_stats(session: Session, user_id: uuid.UUID) -> AchievementStats:
    total = session.exec(
        select(func.count())
        .select_from(Achievement)
        .where(col(Achievement.is_active).is_(True))
    ).one()
    completed = list_user_achievements(session, user_id, completed=True)
    rate = round(len(completed) * 100 / total, 2) if total else 0.0
    return AchievementStats(
        total=total,
        completed=len(completed),
        completion_rate=rate,
        recent=completed[:RECENT_ACHIEVEMENTS],
    )


def get_profile(session: Session, user_id: uuid.UUID) -> GameProfile:
    summary = get_or_create_summary(session, user_id)
    session.commit()
    session.refresh(summary)
    return GameProfile(
        summary=UserPointsSummaryPublic.model_validate(summary),
        level=level_info(summary.total_points),
        achievements=achievement_stats(session, user_id),
    )


def list_achievements(session: Session, *, include_inactive: bool = False) -> list[Achievement]:
    statement = select(Achievement)
    if not include_inactive:
        statement = statement.where(col(Achievement.is_active).is_(True))
    statement = statement.order_by(col(Achievement.order_index), col(Achievement.id))
    return list(session.exec(statement).all())


def create_achievement(session: Session, achievement_in: AchievementCreate) -> Achievement:
    achievement = Achievement.model_validate(
        achievement_in,
        update={
            "condition": achievement_in.condition.model_dump(mode="json"),
            "rewards": achievement_in.rewards.model_dump(mode="json"),
        },
    )
    session.add(achievement)
    session.commit()
    session.refresh(achievement)
    return achievement


def get_achievement(session: Session, achievement_id: int) -> Achievement:
    achievement = session.get(Achievement, achievement_id)
    if not achievement:
        raise EntityNotFoundError("Achievement", achievement_id)
    return achievement


def update_achievement(
    session: Session, achievement_id: int, achievement_in: AchievementUpdate
) -> Achievement:
    achievement = get_achievement(session, achievement_id)
    data = achievement_in.model_dump(exclude_unset=True, mode="json")
    achievement.sqlmodel_update(data)
    session.add(achievement)
    session.commit()
    session.refresh(achievement)
    return achievement


def delete_achievement(session: Session, achievement_id: int) -> None:
    achievement = get_achievement(session, achievement_id)
    for row in session.exec(
        select(UserAchievement).where(UserAchievement.achievement_id == achievement_id)
    ).all():
        session.delete(row)
    session.flush()
    session.delete(achievement)
    session.commit()
