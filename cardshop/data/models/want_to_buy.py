from sqlalchemy import Column, String, Boolean, DateTime

from cardshop.data.database import Base, new_id, utcnow


class WantToBuyModel(Base):
    __tablename__ = "want_to_buy"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=True, index=True)
    card_name = Column(String, nullable=True)
    condition = Column(String, nullable=True)
    media_url = Column(String, nullable=True)
    done = Column(Boolean, nullable=True, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
