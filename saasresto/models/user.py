from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from saasresto.core.database import Base
from saasresto.utils.clock import utcnow

ROLE_OWNER = "OWNER"
ROLE_STAFF = "STAFF"
USER_ROLES = (ROLE_OWNER, ROLE_STAFF)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    email = Column(String, nullable=False)  # always stored lowercased
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_STAFF)

    created_at = Column(DateTime, nullable=False, default=utcnow)
