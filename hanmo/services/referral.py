"""
Invite codes and the rewards paid when an invited account completes the
campaign task.

Rewards shrink with the inviter's own depth in the referral chain: a root
inviter earns the full campaign reward, an inviter who was invited earns
half, anyone deeper earns nothing. Chains three or more links deep complete
without paying anyone.
"""

import secrets
import string
import uuid

from sqlmodel import Session, col, or_, select

from hanmo.core.exceptions import (
    BusinessRuleViolation,
    DomainError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
)
from hanmo.core.observability import get_logger
from hanmo.models import (
    CreditTransactionType,
    ReferralCampaign,
    ReferralCampaignUpdate,
    ReferralInvitee,
    ReferralRelation,
    ReferralReward,
    ReferralStats,
    ReferralStatus,
    ReferralTask,
    ReferralTaskResult,
    User,
    UserReferralCode,
    utcnow,
)
from hanmo.services import credits

logger = get_logger(__name__)

CODE_LENGTH = 8
CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10
MAX_DEPTH = 3


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def get_or_create_code(session: Session, user_id: uuid.UUID) -> UserReferralCode:
    record = session.exec(
        select(UserReferralCode).where(UserReferralCode.user_id == user_id)
    ).first()
    if record:
        return record
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_code()
        taken = session.exec(
            select(UserReferralCode.id).where(UserReferralCode.referral_code == code)
        ).first()
        if not taken:
            break
    else:
        raise BusinessRuleViolation("Could not generate a unique referral code")
    record = UserReferralCode(user_id=user_id, referral_code=code)
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def active_campaign(session: Session) -> ReferralCampaign | None:
    now = utcnow()
    return session.exec(
        select(ReferralCampaign)
        .where(
            col(ReferralCampaign.is_active).is_(True),
            or_(
                col(ReferralCampaign.start_date).is_(None),
                col(ReferralCampaign.start_date) <= now,
            ),
            or_(
                col(ReferralCampaign.end_date).is_(None),
                col(ReferralCampaign.end_date) >= now,
            ),
        )
        .order_by(col(ReferralCampaign.created_at).desc(), col(ReferralCampaign.id).desc())
    ).first()


def chain_depth(session: Session, user_id: uuid.UUID) -> int:
    """Number of referral links above ``user_id``, counted up to ``MAX_DEPTH``."""
    depth = 0
    current = user_id
    while depth < MAX_DEPTH:
        inviter_id = session.exec(
            select(ReferralRelation.inviter_id).where(
                ReferralRelation.invitee_id == current
            )
        ).first()
        if inviter_id is None:
            break
        depth += 1
        current = inviter_id
    return depth


def create_relation(
    session: Session, invitee_id: uuid.UUID, code: str
) -> ReferralRelation:
    normalized = code.strip().upper()
    inviter_code = session.exec(
        select(UserReferralCode).where(UserReferralCode.referral_code == normalized)
    ).first()
    if not inviter_code:
        raise EntityNotFoundError("Referral code", normalized)
    if inviter_code.user_id == invitee_id:
        raise BusinessRuleViolation("You cannot use your own referral code")
    existing = session.exec(
        select(ReferralRelation.id).where(ReferralRelation.invitee_id == invitee_id)
    ).first()
    if existing:
        raise EntityAlreadyExistsError("You have already used a referral code")

    campaign = active_campaign(session)
    if campaign is None:
        raise BusinessRuleViolation("No referral campaign is running")
    if (
        campaign.max_invites_per_user
        and inviter_code.total_invites >= campaign.max_invites_per_user
    ):
        raise BusinessRuleViolation(
            "This referral code has reached its invite limit",
            {"max_invites": campaign.max_invites_per_user},
        )

    relation = ReferralRelation(
        inviter_id=inviter_code.user_id,
        invitee_id=invitee_id,
        referral_code=normalized,
        inviter_reward_amount=campaign.inviter_reward,
        invitee_reward_amount=campaign.invitee_reward,
    )
    inviter_code.total_invites += 1
    session.add(relation)
    session.add(inviter_code)
    session.commit()
    session.refresh(relation)
    logger.info(
        "Referral relation created",
        inviter_id=str(relation.inviter_id),
        invitee_id=str(invitee_id),
    )
    return relation


def _issue_reward(
    session: Session,
    relation: ReferralRelation,
    user_id: uuid.UUID,
    amount: int,
    reward_type: str,
    description: str,
) -> None:
    credits.apply_change(
        session,
        user_id,
        amount,
        CreditTransactionType.REFERRAL,
        description=description,
        related_id=relation.id,
        related_type="referral",
    )
    session.add(
        ReferralReward(
            relation_id=relation.id,
            user_id=user_id,
            reward_type=reward_type,
            reward_amount=amount,
        )
    )


def complete_task(
    session: Session, invitee_id: uuid.UUID, task: ReferralTask
) -> ReferralTaskResult:
    relation = session.exec(
        select(ReferralRelation)
        .where(
            ReferralRelation.invitee_id == invitee_id,
            ReferralRelation.status == ReferralStatus.PENDING,
        )
        .with_for_update()
    ).first()
    if not relation:
        raise EntityNotFoundError("Pending referral", invitee_id)
    campaign = active_campaign(session)
    if campaign is None or campaign.requirement_type != task:
        raise BusinessRuleViolation(
            "Task does not match the running referral campaign",
            {"task": task.value},
        )

    depth = chain_depth(session, relation.inviter_id)
    relation.status = ReferralStatus.COMPLETED
    relation.completed_at = utcnow()
    result = ReferralTaskResult(completed=True, depth=depth)

    if depth < MAX_DEPTH:
        if depth == 0:
            inviter_amount = relation.inviter_reward_amount
        elif depth == 1:
            inviter_amount = relation.inviter_reward_amount // 2
        else:
            inviter_amount = 0
        relation.inviter_reward_amount = inviter_amount

        if not relation.inviter_rewarded and inviter_amount > 0:
            _issue_reward(
                session,
                relation,
                relation.inviter_id,
                inviter_amount,
                "inviter",
                f"Referral reward ({inviter_amount} credits)",
            )
            relation.inviter_rewarded = True
            inviter_code = session.exec(
                select(UserReferralCode).where(
                    UserReferralCode.user_id == relation.inviter_id
                )
            ).first()
            if inviter_code:
                inviter_code.successful_invites += 1
                inviter_code.total_rewards += inviter_amount
                session.add(inviter_code)
            result.inviter_reward = inviter_amount

        invitee_amount = relation.invitee_reward_amount
        if not relation.invitee_rewarded and invitee_amount > 0:
            _issue_reward(
                session,
                relation,
                relation.invitee_id,
                invitee_amount,
                "invitee",
                f"Welcome reward ({invitee_amount} credits)",
            )
            relation.invitee_rewarded = True
            result.invitee_reward = invitee_amount

    session.add(relation)
    session.commit()
    logger.info(
        "Referral task completed",
        relation_id=relation.id,
        depth=depth,
        inviter_reward=result.inviter_reward,
        invitee_reward=result.invitee_reward,
    )
    return result


def get_stats(session: Session, user_id: uuid.UUID) -> ReferralStats:
    code = get_or_create_code(session, user_id)
    rows = session.exec(
        select(ReferralRelation, User.email)
        .join(User, col(User.id) == ReferralRelation.invitee_id)
        .where(ReferralRelation.inviter_id == user_id)
        .order_by(col(ReferralRelation.created_at).desc())
    ).all()
    return ReferralStats(
        referral_code=code.referral_code,
        total_invites=code.total_invites,
        successful_invites=code.successful_invites,
        total_rewards=code.total_rewards,
        invitees=[
            ReferralInvitee(
                invitee_id=relation.invitee_id,
                email=email,
                status=relation.status,
                inviter_reward_amount=relation.inviter_reward_amount,
                created_at=relation.created_at,
                completed_at=relation.completed_at,
            )
            for relation, email in rows
        ],
    )


def list_campaigns(session: Session) -> list[ReferralCampaign]:
    return list(
        session.exec(
            select(ReferralCampaign).order_by(col(ReferralCampaign.created_at).desc())
        ).all()
    )


def update_campaign(
    session: Session, campaign_id: int, campaign_in: ReferralCampaignUpdate
) -> ReferralCampaign:
    campaign = session.get(ReferralCampaign, campaign_id)
    if not campaign:
        raise EntityNotFoundError("Referral campaign", campaign_id)
    campaign.sqlmodel_update(campaign_in.model_dump(exclude_unset=True))
    session.add(campaign)
    session.commit()
    session.refresh(campaign)
    return campaign


def complete_if_pending(
    session: Session, invitee_id: uuid.UUID, task: ReferralTask
) -> ReferralTaskResult | None:
    """Complete ``task`` when the account has a pending invite the running campaign rewards."""
    campaign = active_campaign(session)
    if campaign is None or campaign.requirement_type != task:
        return None
    pending = session.exec(
        select(ReferralRelation.id).where(
            ReferralRelation.invitee_id == invitee_id,
            ReferralRelation.status == ReferralStatus.PENDING,
        )
    ).first()
    if pending is None:
        return None
    return complete_task(session, invitee_id, task)


def apply_signup_code(
    session: Session, invitee_id: uuid.UUID, code: str
) -> ReferralRelation | None:
    """Attach a new account to its inviter; a bad code never blocks registration."""
    try:
        relation = create_relation(session, invitee_id, code)
    except DomainError as e:
        logger.warning(
            "Referral code rejected at signup",
            invitee_id=str(invitee_id),
            code=code,
            error=e.message,
        )
        return None
    complete_if_pending(session, invitee_id, ReferralTask.REGISTER)
    return relation
