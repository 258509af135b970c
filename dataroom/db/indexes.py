from dataroom.db import db


def ensure_indexes():
    # documents: the share token is the only public identifier
    db.documents.create_index("share_link", unique=True)
    db.documents.create_index([("created_at", -1)])
    db.documents.create_index([("owner", 1), ("created_at", -1)])

    # accounts / tokens
    db.users.create_index("username", unique=True)
    db.refresh_tokens.create_index("exp")
    db.revoked_tokens.create_index("exp")

    # activity / audit
    db.activity_logs.create_index([("user_id", 1), ("timestamp", -1)])
    db.audit_events.create_index([("ts", 1)])
    db.audit_events.create_index([("action", 1)])
