"""
streakboard.services.leaderboard_service — Private leaderboards
================================================================

Invite-coded groups ranked live by each member's ``total_points``.

Ranking is sequential: members are sorted by points descending and
numbered 1..N.  Members on equal points get distinct ranks in join order.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from streakboard.constants import (
    INVITE_ALPHABET,
    INVITE_CODE_LENGTH,
    INVITE_CODE_MAX_RETRIES,
    LEADERBOARD_NAME_MAX,
)
from streakboard.database.engine import get_session
from streakboard.database.models import Leaderboard, LeaderboardMember, User
from streakboard.services.errors import LeaderboardNotFound, NotAMember, ValidationFailed
from streakboard.services.locks import user_lock
from streakboard.services.user_service import get_or_create_user, require_user

logger = logging.getLogger(__name__)


def generate_invite_code() -> str:
    """Random code from the unambiguous invite alphabet."""
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def _unique_code(session: Session, factory: Callable[[], str]) -> str:
    for _ in range(INVITE_CODE_MAX_RETRIES):
        code = factory()
        taken = session.scalar(select(Leaderboard.id).where(Leaderboard.invite_code == code))
        if taken is None:
            return code
    raise RuntimeError(
        f"Could not generate a unique invite code after {INVITE_CODE_MAX_RETRIES} attempts"
    )


def _normalize_code(invite_code: str) -> str:
    return (invite_code or "").strip().upper()


def _member_count(session: Session, board: Leaderboard) -> int:
    return session.scalar(
        select(func.count()).select_from(LeaderboardMember)
        .where(LeaderboardMember.leaderboard_id == board.id)
    ) or 0


def _board_summary(session: Session, board: Leaderboard, viewer: User | None = None) -> dict:
    creator = session.get(User, board.creator_id)
    summary = {
        "id": board.id,
        "name": board.name,
        "invite_code": board.invite_code,
        "created_at": board.created_at.isoformat() if board.created_at else None,
        "member_count": _member_count(session, board),
        "creator_name": (creator.display_name if creator else None) or "Unknown",
    }
    if viewer is not None:
        summary["is_creator"] = board.creator_id == viewer.id
    return summary


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def create_leaderboard(
    engine: Engine,
    external_id: str,
    name: str,
    *,
    code_factory: Callable[[], str] = generate_invite_code,
) -> dict:
    """Create a leaderboard; the creator becomes its first member."""
    name = (name or "").strip()
    if not 1 <= len(name) <= LEADERBOARD_NAME_MAX:
        raise ValidationFailed(f"name must be 1–{LEADERBOARD_NAME_MAX} characters")

    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id)
        board = Leaderboard(
            name=name,
            invite_code=_unique_code(session, code_factory),
            creator_id=user.id,
        )
        session.add(board)
        session.flush()
        session.add(LeaderboardMember(leaderboard_id=board.id, user_id=user.id))
        session.flush()
        logger.info("Leaderboard %r created by %s (%s)", name, external_id, board.invite_code)
        return _board_summary(session, board, user)


def join_leaderboard(engine: Engine, external_id: str, invite_code: str) -> dict:
    """Join by invite code.  Joining twice reports ``already_member``."""
    code = _normalize_code(invite_code)
    with user_lock(external_id), get_session(engine) as session:
        user = get_or_create_user(session, external_id)
        board = session.scalar(select(Leaderboard).where(Leaderboard.invite_code == code))
        if board is None:
            raise LeaderboardNotFound("Leaderboard not found, check the invite code")

        existing = session.scalar(
            select(LeaderboardMember).where(
                LeaderboardMember.leaderboard_id == board.id,
                LeaderboardMember.user_id == user.id,
            )
        )
        if existing is None:
            session.add(LeaderboardMember(leaderboard_id=board.id, user_id=user.id))
            session.flush()
            logger.info("User %s joined leaderboard %d", external_id, board.id)
        return {
            "leaderboard": _board_summary(session, board, user),
            "already_member": existing is not None,
        }


def leave_leaderboard(engine: Engine, external_id: str, leaderboard_id: int) -> None:
    with user_lock(external_id), get_session(engine) as session:
        user = require_user(session, external_id)
        membership = session.scalar(
            select(LeaderboardMember).where(
                LeaderboardMember.leaderboard_id == leaderboard_id,
                LeaderboardMember.user_id == user.id,
            )
        )
        if membership is None:
            raise NotAMember("Not a member of this leaderboard")
        session.delete(membership)
        logger.info("User %s left leaderboard %d", external_id, leaderboard_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_my_leaderboards(engine: Engine, external_id: str) -> list[dict]:
    with get_session(engine) as session:
        user = require_user(session, external_id)
        boards = session.scalars(
            select(Leaderboard)
            .join(LeaderboardMember, LeaderboardMember.leaderboard_id == Leaderboard.id)
            .where(LeaderboardMember.user_id == user.id)
            .order_by(LeaderboardMember.id)
        ).all()
        return [_board_summary(session, b, user) for b in boards]


def get_leaderboard_by_invite(engine: Engine, invite_code: str) -> dict:
    with get_session(engine) as session:
        board = session.scalar(
            select(Leaderboard).where(Leaderboard.invite_code == _normalize_code(invite_code))
        )
        if board is None:
            raise LeaderboardNotFound()
        return _board_summary(session, board)


def rank_members(members: list[dict]) -> list[dict]:
    """Sort by points descending and number 1..N; ties keep input order."""
    ordered = sorted(members, key=lambda m: m["total_points"], reverse=True)
    return [{**m, "rank": i + 1} for i, m in enumerate(ordered)]


def get_leaderboard_rankings(engine: Engine, leaderboard_id: int) -> dict:
    with get_session(engine) as session:
        board = session.get(Leaderboard, leaderboard_id)
        if board is None:
            raise LeaderboardNotFound()
        rows = session.execute(
            select(LeaderboardMember, User)
            .join(User, User.id == LeaderboardMember.user_id)
            .where(LeaderboardMember.leaderboard_id == board.id)
            .order_by(LeaderboardMember.id)
        ).all()
        members = [
            {
                "external_id": user.external_id,
                "display_name": user.display_name or "Student",
                "total_points": user.total_points or 0,
                "streak_count": user.streak_count or 0,
                "joined_at": m.joined_at.isoformat() if m.joined_at else None,
            }
            for m, user in rows
        ]
        return {
            "id": board.id,
            "name": board.name,
            "invite_code": board.invite_code,
            "members": rank_members(members),
        }
