from typing import Any

from fastapi import APIRouter, Depends

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import (
    ReferralApply,
    ReferralCampaignPublic,
    ReferralCampaignUpdate,
    ReferralCodePublic,
    ReferralStats,
    ReferralTask,
    ReferralTaskResult,
)
from hanmo.services import referral

router = APIRouter(prefix="/referral", tags=["referral"])


@router.get("/code", response_model=ReferralCodePublic)
def read_my_code(session: SessionDep, current_user: CurrentUser) -> Any:
    return referral.get_or_create_code(session, current_user.id)


@router.get("/stats", response_model=ReferralStats)
def read_my_stats(session: SessionDep, current_user: CurrentUser) -> Any:
    return referral.get_stats(session, current_user.id)


@router.post("/apply", response_model=ReferralTaskResult)
def apply_code(session: SessionDep, current_user: CurrentUser, body: ReferralApply) -> Any:
    """
    Attach the current account to an inviter.

    The account already exists, so a campaign that rewards registration
    completes straight away.
    """
    referral.create_relation(session, current_user.id, body.referral_code)
    result = referral.complete_if_pending(session, current_user.id, ReferralTask.REGISTER)
    if result is None:
        return ReferralTaskResult(completed=False, depth=0)
    return result


@router.get(
    "/campaigns",
    dependencies=[Depends(require_permission("referral-campaign.read"))],
    response_model=list[ReferralCampaignPublic],
)
def read_campaigns(session: SessionDep) -> Any:
    return referral.list_campaigns(session)


@router.patch(
    "/campaigns/{campaign_id}",
    dependencies=[Depends(require_permission("referral-campaign.update"))],
    response_model=ReferralCampaignPublic,
)
def update_campaign(
    session: SessionDep, campaign_id: int, campaign_in: ReferralCampaignUpdate
) -> Any:
    return referral.update_campaign(session, campaign_id, campaign_in)
