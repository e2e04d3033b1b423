"""
Activity log storage re-exports.
"""
from core.db.activity.activity_store import create_activity_log, get_activity_logs

__all__ = ["create_activity_log", "get_activity_logs"]
