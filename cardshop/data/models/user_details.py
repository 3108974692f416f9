from sqlalchemy import Column, String, DateTime

from cardshop.data.database import Base, new_id, utcnow


class UserDetailsModel(Base):
    __tablename__ = "user_details"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=True, unique=True)
    role = Column(String, nullable=True, default="customer")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
