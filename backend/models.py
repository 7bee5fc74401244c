from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    SmallInteger,
    Integer,
    Numeric,
    CheckConstraint,
    Enum,
    Index,
    text,
    ForeignKey,
)
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.ext.declarative import declarative_base
from typing import Optional, List
from decimal import Decimal
import uuid

Base = declarative_base()

USER_ROLES = ("vendor", "supplier")
ORDER_STATUSES = ("pending", "accepted", "rejected", "completed")

user_role_enum = Enum(*USER_ROLES, name="user_role")


class Users(Base):
    """
    Supabase auth.users table schema
    Only the columns needed for foreign keys are mirrored; the table itself is owned by Supabase
    """
    __tablename__ = "users"
    __table_args__ = {"schema": "auth"}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[Optional[DateTime]] = mapped_column(DateTime(True))

    profile: Mapped[Optional["Profile"]] = relationship(
        "Profile",
        back_populates="user",
        uselist=False
    )


class Profile(Base):
    """
    One profile per principal, created at sign-up
    user_role is fixed after creation
    """
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("auth.users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    location: Mapped[Optional[str]] = mapped_column(String(300))
    contact_number: Mapped[Optional[str]] = mapped_column(String(20))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    preferred_languages: Mapped[Optional[List[str]]] = mapped_column(ARRAY(Text), default=list)

    user_role: Mapped[str] = mapped_column(user_role_enum, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    user: Mapped["Users"] = relationship("Users", back_populates="profile")
    products: Mapped[List["Product"]] = relationship(
        "Product",
        back_populates="supplier",
        cascade="all, delete-orphan"
    )


class Product(Base):
    """
    Products listed by suppliers
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price > 0", name="products_price_positive_check"),
        CheckConstraint("quantity >= 0", name="products_quantity_non_negative_check"),
        CheckConstraint("freshness >= 0 AND freshness <= 100", name="products_freshness_range_check"),
        Index("products_supplier_id_idx", "supplier_id"),
        Index("products_is_available_idx", "is_available"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)  # kg, piece, liter, etc.

    # Inventory
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    freshness: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    image_url: Mapped[Optional[str]] = mapped_column(String(500))

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    supplier: Mapped["Profile"] = relationship("Profile", back_populates="products")


class Order(Base):
    """
    Orders placed by vendors to suppliers
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount > 0", name="orders_total_amount_positive_check"),
        CheckConstraint("quantity_requested > 0", name="orders_quantity_positive_check"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'completed')",
            name="orders_status_check"
        ),
        Index("orders_vendor_id_idx", "vendor_id"),
        Index("orders_supplier_id_idx", "supplier_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Order participants
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )
    quantity_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    product: Mapped["Product"] = relationship("Product")


class Feedback(Base):
    """
    Product feedback left by vendors; not tied to a completed order
    """
    __tablename__ = "feedbacks"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="feedbacks_rating_range_check"),
        Index("feedbacks_supplier_id_idx", "supplier_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.user_id", ondelete="CASCADE"),
        nullable=False
    )

    message: Mapped[Optional[str]] = mapped_column(Text)
    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    product: Mapped["Product"] = relationship("Product")
