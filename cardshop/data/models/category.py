from sqlalchemy import Column, String, Boolean, DateTime

from cardshop.data.database import Base, new_id, utcnow


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=True)
    active = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
