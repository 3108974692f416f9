from sqlalchemy import Column, String, Numeric, DateTime

from cardshop.data.database import Base, new_id, utcnow


class ServiceModel(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    media_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
