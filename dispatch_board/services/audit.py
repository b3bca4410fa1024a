"""
Admin login audit trail.
Append-only: entries are written and read, never updated or deleted.
"""
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from ..models.models import AdminLoginLog
from .time_rules import as_iso, utc_now

MAX_LOG_LIMIT = 500


def create_admin_login_log(
    db: Session,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    session_info: Optional[Dict[str, Any]] = None,
) -> AdminLoginLog:
    """
    Create an append-only admin login entry.

    Args:
        db: Database session
        user_id: Identity provider user ID
        user_email: Account email
        ip_address: Client address as seen by the server
        user_agent: Client User-Agent header
        session_info: Small JSON blob describing the session (screen, locale, ...)

    Returns:
        Created AdminLoginLog object
    """
    entry = AdminLoginLog(
        user_id=user_id,
        user_email=user_email,
        ip_address=ip_address,
        user_agent=user_agent,
        session_info=session_info,
        login_timestamp=utc_now(),
    )
    db.add(entry)
    db.commit()
    return entry


def get_admin_login_logs(
    db: Session,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
    limit: int = 100,
) -> List[AdminLoginLog]:
    """
    Get admin login entries, newest first.

    Args:
        db: Database session
        user_id: Filter by user ID
        user_email: Filter by email
        limit: Maximum number of results (clamped to 1..500)

    Returns:
        List of AdminLoginLog objects
    """
    query = db.query(AdminLoginLog)

    if user_id:
        query = query.filter(AdminLoginLog.user_id == user_id)

    if user_email:
        query = query.filter(AdminLoginLog.user_email == user_email)

    query = query.order_by(AdminLoginLog.login_timestamp.desc(), AdminLoginLog.id.desc())
    return query.limit(max(1, min(MAX_LOG_LIMIT, limit))).all()


def serialize_log(entry: AdminLoginLog) -> dict:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "user_email": entry.user_email,
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "session_info": entry.session_info,
        "login_timestamp": as_iso(entry.login_timestamp),
    }
