import logging
from datetime import datetime, timezone

from pymongo.errors import PyMongoError

from dataroom.db import activity_logs

logger = logging.getLogger(__name__)


def log_activity(user_id: str, action: str, metadata: dict | None = None):
    # activity history must never fail the request that produced it
    try:
        activity_logs.insert_one({
            "user_id": user_id,
            "action": action,
            "timestamp": datetime.now(timezone.utc),
            "metadata": metadata or {}
        })
    except PyMongoError as e:
        logger.warning("activity log write failed for %s/%s: %s", user_id, action, e)
