"""
SQLAlchemy Database Models

Restaurant domain model:
- Users with a single role each (customers and staff)
- Menu: categories, items, price variants and add-ons
- Orders with priced line items and chosen add-ons
- Payments, day sessions, system settings and the audit trail
- Customer support chats

All primary keys are UUID strings. Timestamps are naive UTC.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from flame_kitchen.core.config import get_settings
from flame_kitchen.database import Base

settings = get_settings()

SYSTEM_SETTINGS_ID = "system"


def utcnow() -> datetime:
    """Current UTC time without tzinfo, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    """Every user has exactly one role."""
    CUSTOMER = "CUSTOMER"
    RECEPTIONIST = "RECEPTIONIST"
    CASHIER = "CASHIER"
    KITCHEN_STAFF = "KITCHEN_STAFF"
    ADMIN = "ADMIN"


STAFF_ROLES = (
    UserRole.RECEPTIONIST,
    UserRole.CASHIER,
    UserRole.KITCHEN_STAFF,
    UserRole.ADMIN,
)


class OrderType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    ONLINE = "ONLINE"


class OrderStatus(str, enum.Enum):
    """
    Order status workflow.

    PENDING → CONFIRMED → PREPARING → READY → COMPLETED, or CANCELLED.
    Transitions are assigned directly and never validated.
    """
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOMO = "MOMO"
    PAYSTACK = "PAYSTACK"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class ChatStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class SenderRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


# Shared by orders and payments so each database enum type is declared once
payment_method_type = Enum(PaymentMethod, name="payment_method")
payment_status_type = Enum(PaymentStatus, name="payment_status")


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Customer or staff account."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(30), unique=True, nullable=True, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(Enum(UserRole, name="user_role"), default=UserRole.CUSTOMER, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<User {self.id} - {self.role.value}>"


# =============================================================================
# MENU
# =============================================================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship(
        "MenuItem",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="MenuItem.display_order",
    )

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    base_price = Column(Float, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    category = relationship("Category", back_populates="items")
    variants = relationship(
        "PriceVariant",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    addons = relationship(
        "Addon",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<MenuItem {self.name} - {self.base_price}>"


class PriceVariant(Base):
    """Alternative price for a menu item (e.g. size). Replaces the base price."""
    __tablename__ = "price_variants"

    id = Column(String(36), primary_key=True, default=new_id)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    menu_item = relationship("MenuItem", back_populates="variants")


class Addon(Base):
    """Optional extra for a menu item. Added to the unit price."""
    __tablename__ = "addons"

    id = Column(String(36), primary_key=True, default=new_id)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    menu_item = relationship("MenuItem", back_populates="addons")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Customer or counter order.

    Tracks the lifecycle from creation through payment, preparation
    and completion.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String(40), unique=True, nullable=False, index=True)

    # =========================================================================
    # PEOPLE
    # =========================================================================
    customer_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    prepared_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    order_type = Column(Enum(OrderType, name="order_type"), nullable=False, index=True)
    status = Column(Enum(OrderStatus, name="order_status"), default=OrderStatus.PENDING, nullable=False, index=True)
    table_number = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    delivery_address = Column(Text, nullable=True)
    contact_phone = Column(String(30), nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    discount = Column(Float, default=0.0, nullable=False)
    tax = Column(Float, default=0.0, nullable=False)
    total = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_method = Column(payment_method_type, nullable=True)
    payment_status = Column(payment_status_type, default=PaymentStatus.PENDING, nullable=False, index=True)
    paystack_ref = Column(String(120), nullable=True, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    ready_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    customer = relationship("User", foreign_keys=[customer_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    prepared_by = relationship("User", foreign_keys=[prepared_by_id])
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payment = relationship("Payment", back_populates="order", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Order {self.order_number} - {self.status.value}>"


class OrderItem(Base):
    """A priced line of an order. ``unit_price`` already includes add-ons."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(String(36), ForeignKey("price_variants.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", lazy="selectin")
    variant = relationship("PriceVariant", lazy="selectin")
    addons = relationship(
        "OrderItemAddon",
        back_populates="order_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class OrderItemAddon(Base):
    """Add-on chosen for an order line, with its price at order time."""
    __tablename__ = "order_item_addons"

    id = Column(String(36), primary_key=True, default=new_id)
    order_item_id = Column(String(36), ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True)
    addon_id = Column(String(36), ForeignKey("addons.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    order_item = relationship("OrderItem", back_populates="addons")
    addon = relationship("Addon", lazy="selectin")


# =============================================================================
# PAYMENTS
# =============================================================================

class Payment(Base):
    """One settled (or attempted) payment per order."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    amount = Column(Float, nullable=False)
    method = Column(payment_method_type, nullable=False, index=True)
    status = Column(payment_status_type, default=PaymentStatus.PENDING, nullable=False, index=True)
    paystack_ref = Column(String(120), unique=True, nullable=True)
    paystack_data = Column(Text, nullable=True)  # Raw gateway JSON

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    order = relationship("Order", back_populates="payment")


# =============================================================================
# OPERATIONS
# =============================================================================

class DaySession(Base):
    """
    Trading day. While closed, no new orders may be created.

    ``date`` is the UTC calendar date as ``YYYY-MM-DD``.
    """
    __tablename__ = "day_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(String(10), unique=True, nullable=False, index=True)
    is_closed = Column(Boolean, default=False, nullable=False)
    opened_at = Column(DateTime, default=utcnow, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    closed_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    total_orders = Column(Integer, default=0, nullable=False)
    total_revenue = Column(Float, default=0.0, nullable=False)
    total_cash = Column(Float, default=0.0, nullable=False)
    total_card = Column(Float, default=0.0, nullable=False)
    total_momo = Column(Float, default=0.0, nullable=False)
    total_paystack = Column(Float, default=0.0, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    closed_by = relationship("User")


class SystemSettings(Base):
    """Single-row restaurant configuration (id ``system``)."""
    __tablename__ = "system_settings"

    id = Column(String(20), primary_key=True, default=SYSTEM_SETTINGS_ID)
    restaurant_name = Column(String(150), default=settings.restaurant_name, nullable=False)
    restaurant_address = Column(Text, nullable=True)
    restaurant_phone = Column(String(30), nullable=True)
    restaurant_email = Column(String(255), nullable=True)
    restaurant_logo = Column(String(500), nullable=True)
    tax_rate = Column(Float, default=settings.tax_rate, nullable=False)
    currency = Column(String(10), default=settings.currency, nullable=False)
    currency_symbol = Column(String(10), default=settings.currency_symbol, nullable=False)
    order_prefix = Column(String(10), default=settings.order_prefix, nullable=False)
    # Stored and returned only; nothing in the order flow reads these
    auto_confirm_orders = Column(Boolean, default=False, nullable=False)
    require_payment_before_prep = Column(Boolean, default=False, nullable=False)
    paystack_secret_key = Column(String(255), nullable=True)
    paystack_public_key = Column(String(255), nullable=True)
    paystack_webhook_secret = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(60), nullable=False, index=True)
    entity = Column(String(60), nullable=False)
    entity_id = Column(String(36), nullable=True)
    details = Column(Text, nullable=True)  # JSON string
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    user = relationship("User")


# =============================================================================
# SUPPORT CHAT
# =============================================================================

class Chat(Base):
    __tablename__ = "chats"

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(150), nullable=True)
    customer_email = Column(String(255), nullable=True)
    status = Column(Enum(ChatStatus, name="chat_status"), default=ChatStatus.ACTIVE, nullable=False, index=True)
    last_message_at = Column(DateTime, default=utcnow, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    customer = relationship("User")
    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    chat_id = Column(String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sender_role = Column(Enum(SenderRole, name="sender_role"), nullable=False)
    sender_name = Column(String(150), nullable=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    chat = relationship("Chat", back_populates="messages")
