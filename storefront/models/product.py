from sqlalchemy import CheckConstraint, Column, Integer, String, Numeric, DateTime, Text, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from storefront.db.base_class import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    barcode = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    # Stock: units available for sale
    quantity = Column(Integer, default=0, nullable=False)
    category = Column(String(100), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    cart_items = relationship("CartItem", back_populates="product", cascade="all, delete-orphan")

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


Index("idx_product_category", Product.category)
Index("idx_product_price", Product.price)
