# dataroom/db/__init__.py
from pymongo import MongoClient

from dataroom import settings

client = MongoClient(settings.MONGO_URI)
db = client[settings.MONGO_DB]

# --- Collections (one source of truth) ---
documents = db["documents"]
users = db["users"]
activity_logs = db["activity_logs"]
audit_events = db["audit_events"]
refresh_tokens = db["refresh_tokens"]
revoked_tokens = db["revoked_tokens"]
