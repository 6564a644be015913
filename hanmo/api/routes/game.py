from typing import Any

from fastapi import APIRouter, Depends

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import (
    AchievementCreate,
    AchievementNotify,
    AchievementPublic,
    AchievementStats,
    AchievementUpdate,
    GameProfile,
    Message,
    SigninResult,
    SigninStatus,
    UserAchievementPublic,
)
from hanmo.services import gamification

router = APIRouter(prefix="/game", tags=["game"])


@router.post("/signin", response_model=SigninResult)
def signin(session: SessionDep, current_user: CurrentUser) -> Any:
    """
    Daily sign-in with streak bonus. Also checks achievements.
    """
    return gamification.signin(session, current_user.id)


@router.get("/signin", response_model=SigninStatus)
def read_signin_status(session: SessionDep, current_user: CurrentUser) -> Any:
    return gamification.get_signin_status(session, current_user.id)


@router.get("/profile", response_model=GameProfile)
def read_profile(session: SessionDep, current_user: CurrentUser) -> Any:
    return gamification.get_profile(session, current_user.id)


@router.get("/achievements/me", response_model=list[UserAchievementPublic])
def read_my_achievements(
    session: SessionDep, current_user: CurrentUser, completed: bool | None = None
) -> Any:
    return gamification.list_user_achievements(
        session, current_user.id, completed=completed
    )


@router.get("/achievements/me/stats", response_model=AchievementStats)
def read_my_achievement_stats(session: SessionDep, current_user: CurrentUser) -> Any:
    return gamification.achievement_stats(session, current_user.id)


@router.get("/achievements/unread", response_model=list[UserAchievementPublic])
def read_unread_achievements(session: SessionDep, current_user: CurrentUser) -> Any:
    return gamification.unread_achievements(session, current_user.id)


@router.post("/achievements/notified")
def mark_achievements_notified(
    session: SessionDep, current_user: CurrentUser, body: AchievementNotify
) -> Message:
    count = gamification.mark_notified(session, current_user.id, body.achievement_ids)
    return Message(message=f"{count} achievements marked as notified")


@router.post("/achievements/check", response_model=list[AchievementPublic])
def check_achievements(session: SessionDep, current_user: CurrentUser) -> Any:
    granted = gamification.check_achievements(session, current_user.id)
    session.commit()
    for achievement in granted:
        session.refresh(achievement)
    return granted


# Achievement administration
@router.get(
    "/achievements",
    dependencies=[Depends(require_permission("achievement.read"))],
    response_model=list[AchievementPublic],
)
def read_achievements(session: SessionDep, include_inactive: bool = False) -> Any:
    return gamification.list_achievements(session, include_inactive=include_inactive)


@router.post(
    "/achievements",
    dependencies=[Depends(require_permission("achievement.create"))],
    response_model=AchievementPublic,
)
def create_achievement(session: SessionDep, achievement_in: AchievementCreate) -> Any:
    return gamification.create_achievement(session, achievement_in)


@router.get(
    "/achievements/{achievement_id}",
    dependencies=[Depends(require_permission("achievement.read"))],
    response_model=AchievementPublic,
)
def read_achievement(session: SessionDep, achievement_id: int) -> Any:
    return gamification.get_achievement(session, achievement_id)


@router.patch(
    "/achievements/{achievement_id}",
    dependencies=[Depends(require_permission("achievement.update"))],
    response_model=AchievementPublic,
)
def update_achievement(
    session: SessionDep, achievement_id: int, achievement_in: AchievementUpdate
) -> Any:
    return gamification.update_achievement(session, achievement_id, achievement_in)


@router.delete(
    "/achievements/{achievement_id}",
    dependencies=[Depends(require_permission("achievement.delete"))],
)
def delete_achievement(session: SessionDep, achievement_id: int) -> Message:
    gamification.delete_achievement(session, achievement_id)
    return Message(message="Achievement deleted successfully")
