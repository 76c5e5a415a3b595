from sqlalchemy import Column, String
from app.core.database import Base
from app.models.goal import UTCDateTime, new_id, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(UTCDateTime(timezone=True), default=utcnow)
