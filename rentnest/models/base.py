import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Uuid

from rentnest.core.database import Base


class BaseModel(Base):
    __abstract__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, onupdate=datetime.utcnow, nullable=True)
