from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from scheduling.models import AuditEvent

User = get_user_model()

def log_action(*, user: Optional[User], action: str, obj: Any = None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Record a scheduling mutation; call inside the mutating transaction."""
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=type(obj).__name__ if obj is not None else None,
        object_id=str(obj.pk) if obj is not None else None,
        detail=detail or {},
    )
