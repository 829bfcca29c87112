"""
Audit trail.

Security-relevant actions (logins, password and token changes, SOS
fan-out, coupon issue and redemption) are stored as ``AuditEvent`` rows
and echoed to the ``core.audit`` logger.
"""
import logging
from typing import Any, Dict, Optional

from core.models import AuditEvent, User

logger = logging.getLogger('core.audit')


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id=None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    actor = user if isinstance(user, User) and user.pk else None
    event = AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=None if object_id is None else str(object_id),
        detail=detail or {},
    )
    logger.info('%s %s:%s by %s', action, object_type or '-', '-' if object_id is None else object_id,
                actor.pk if actor else 'anonymous')
    return event
