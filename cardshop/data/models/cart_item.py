from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint

from cardshop.data.database import Base, new_id, utcnow


class CartItemModel(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=True, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=True)
    amount = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # one row per (user, target); NULLs never collide so each constraint
    # only applies to its own kind of target
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="u_cart_user_product"),
        UniqueConstraint("user_id", "service_id", name="u_cart_user_service"),
    )
