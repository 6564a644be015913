from sqlmodel import Session

from hanmo.models import ReferralRelation
from hanmo.services.referral import CODE_ALPHABET, MAX_DEPTH, chain_depth, generate_code
from hanmo.tests.utils.user import create_random_user


def test_generate_code_alphabet() -> None:
    code = generate_code()
    assert len(code) == 8
    assert set(code) <= set(CODE_ALPHABET)


def test_chain_depth(db: Session) -> None:
    users = [create_random_user(db) for _ in range(MAX_DEPTH + 2)]
    for inviter, invitee in zip(users, users[1:]):
        db.add(
            ReferralRelation(
                inviter_id=inviter.id, invitee_id=invitee.id, referral_code="TESTCODE"
            )
        )
    db.commit()

    assert chain_depth(db, users[0].id) == 0
    assert chain_depth(db, users[1].id) == 1
    assert chain_depth(db, users[2].id) == 2
    # Counting stops at the maximum depth
    assert chain_depth(db, users[-1].id) == MAX_DEPTH
