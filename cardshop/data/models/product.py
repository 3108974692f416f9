from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey

from cardshop.data.database import Base, new_id, utcnow


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    condition = Column(String, nullable=True)
    category_id = Column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    media_url_front = Column(String, nullable=True)
    media_url_back = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
