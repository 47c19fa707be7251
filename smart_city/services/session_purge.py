"""Delete refresh-token sessions whose expiry has passed."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from smart_city.models import UserSession

if TYPE_CHECKING:
    from smart_city.core.config import Settings

logger = logging.getLogger(__name__)


def purge_expired_sessions(
    session: Session, settings: "Settings", now: datetime | None = None
) -> int:
    """
    Delete sessions with expires_at <= now. Returns the number deleted.

    Expired sessions are already ignored by refresh; this only reclaims rows.
    Idempotent: safe to run repeatedly.
    """
    if not settings.SESSION_PURGE_ENABLED:
        logger.info("Session purge is disabled (SESSION_PURGE_ENABLED=false); skipping.")
        return 0

    cutoff = now or datetime.now(UTC)
    deleted_count = (
        session.query(UserSession)
        .filter(UserSession.expires_at <= cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Session purge: cutoff=%s, sessions_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
