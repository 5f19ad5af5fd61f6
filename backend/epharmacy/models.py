from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from epharmacy.db import Base


class UserRole:
    USER = "user"
    ADMIN = "admin"
    PHARMACY = "pharmacy"


class OrderStatus:
    PENDING = "pending"
    APPROVED = "approved"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PrescriptionStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProductStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING_APPROVAL = "pending_approval"


# Money is stored as NUMERIC(10, 2) but handed to Python as float.
Money = Numeric(10, 2, asdecimal=False)


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class User(TimestampMixin, Base):
    """
    Customers and platform admins.
    Admins are users with role="admin"; pharmacies have their own table and credentials.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    role = Column(String, nullable=False, default=UserRole.USER)
    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)

    prescriptions = relationship(
        "Prescription",
        back_populates="user",
        foreign_keys="Prescription.user_id",
    )
    orders = relationship("Order", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Pharmacy(TimestampMixin, Base):
    __tablename__ = "pharmacies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    license_number = Column(String, unique=True, index=True, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    latitude = Column(Numeric(10, 8, asdecimal=False), nullable=True)
    longitude = Column(Numeric(11, 8, asdecimal=False), nullable=True)

    products = relationship("Product", back_populates="pharmacy")


class Product(TimestampMixin, Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_products_price_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Money, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    category = Column(String, index=True, nullable=False)
    image_url = Column(String, nullable=True)
    requires_prescription = Column(Boolean, nullable=False, default=False)
    status = Column(String, index=True, nullable=False, default=ProductStatus.PENDING_APPROVAL)

    pharmacy_id = Column(Integer, ForeignKey("pharmacies.id"), index=True, nullable=False)
    pharmacy = relationship("Pharmacy", back_populates="products")

    order_items = relationship("OrderItem", back_populates="product")


class Prescription(TimestampMixin, Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    original_name = Column(String, nullable=True)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String, nullable=False)
    status = Column(String, index=True, nullable=False, default=PrescriptionStatus.PENDING)
    admin_notes = Column(Text, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    user = relationship("User", back_populates="prescriptions", foreign_keys=[user_id])

    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewer = relationship("User", foreign_keys=[approved_by])


class Order(TimestampMixin, Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    total_amount = Column(Money, nullable=False)
    status = Column(String, index=True, nullable=False, default=OrderStatus.PENDING)
    shipping_address = Column(Text, nullable=False)
    tracking_number = Column(String, unique=True, index=True, nullable=True)
    estimated_delivery_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    # Last payment attempt that completed or is awaiting confirmation.
    payment_method = Column(String, nullable=True)
    transaction_id = Column(String, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    user = relationship("User", back_populates="orders")

    prescription_id = Column(Integer, ForeignKey("prescriptions.id"), nullable=True)
    prescription = relationship("Prescription")

    assigned_pharmacy_id = Column(Integer, ForeignKey("pharmacies.id"), nullable=True)
    assigned_pharmacy = relationship("Pharmacy")

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)

    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    order = relationship("Order", back_populates="order_items")

    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product = relationship("Product", back_populates="order_items")
