from sqlalchemy import Column, DateTime, Integer, String

from saasresto.core.database import Base
from saasresto.utils.clock import utcnow


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    # Immutable once created; no update path is exposed.
    slug = Column(String(30), unique=True, index=True, nullable=False)
    name = Column(String(80), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
