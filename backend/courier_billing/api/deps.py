"""
Shared API dependencies: database session, slab catalog, current user and role checks.
"""
from typing import Optional
import uuid
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from courier_billing.config.billing_config import get_roles
from courier_billing.core.security import verify_access_token
from courier_billing.db.database import get_db
from courier_billing.models import User, UserRole
from courier_billing.services.errors import Forbidden
from courier_billing.services.slab_catalog import SlabCatalog

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_slab_catalog(request: Request) -> SlabCatalog:
    return request.app.state.slab_catalog


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The active user behind the bearer token, or None."""
    if credentials is None:
        return None
    user_id = verify_access_token(credentials.credentials)
    if user_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        return None
    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid user_id in token: {user_id}")
        return None
    return db.query(User).filter(User.id == user_uuid, User.is_active.is_(True)).first()


def has_role(user: Optional[User], role: str) -> bool:
    if user is None:
        return False
    user_role = user.role.value if isinstance(user.role, UserRole) else user.role
    return user_role == UserRole.ADMIN.value or user_role == role


def require_action(action: str):
    """Dependency factory: the caller must hold one of the roles configured for ``action``."""
    def checker(user: Optional[User] = Depends(get_current_user)) -> User:
        roles = get_roles(action)
        if not any(has_role(user, role) for role in roles):
            raise Forbidden(f"Insufficient entitlement for {action.replace('_', ' ')}")
        return user
    return checker


require_allocator = require_action("allocate")
require_rate_editor = require_action("rate_edit")
