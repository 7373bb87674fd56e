"""
User records backing bearer-token authentication.
"""
from sqlalchemy import Column, String, DateTime, Boolean, Enum as SQLEnum
import uuid
from datetime import datetime
import enum
from courier_billing.db.database import Base
from courier_billing.db.types import UUIDType


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    BILLING_OPERATOR = "billing_operator"


class User(Base):
    __tablename__ = "users"

    id = Column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True)
    role = Column(
        SQLEnum(
            UserRole,
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=UserRole.BILLING_OPERATOR.value,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
