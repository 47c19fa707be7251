"""
CLI entrypoint for the expired-session purge. Run from cron, e.g.:

  python -m smart_city.session_purge

Or hourly: 0 * * * * cd /path/to/smart-city-api && .venv/bin/python -m smart_city.session_purge
"""

import logging
import sys

from smart_city.core.config import get_settings
from smart_city.core.database import SessionLocal
from smart_city.services.session_purge import purge_expired_sessions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete every session whose refresh token has expired."""
    settings = get_settings()
    db = SessionLocal()
    try:
        sessions_deleted = purge_expired_sessions(db, settings)
        logger.info("Session purge completed: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        logger.exception("Session purge failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
