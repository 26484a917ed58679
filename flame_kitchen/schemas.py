"""
Pydantic Schemas for Request/Response Validation

Request bodies are validated here; any failure is reported by the API
as a 400 with the list of field errors. Response schemas read straight
from ORM objects (``from_attributes``) and only touch relationships the
routes load up front.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from flame_kitchen.models import (
    ChatStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    SenderRole,
    STAFF_ROLES,
    UserRole,
)


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# =============================================================================
# USERS & AUTH
# =============================================================================

class UserSummary(BaseModel):
    """Short user reference embedded in orders, chats and logs."""
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    is_active: bool
    created_at: datetime


class RegisterRequest(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator("phone", "first_name", "last_name")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    @model_validator(mode="after")
    def require_contact(self) -> "RegisterRequest":
        if not self.email and not self.phone:
            raise ValueError("Email or phone is required")
        return self


class LoginRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip().lower() or None

    @model_validator(mode="after")
    def require_contact(self) -> "LoginRequest":
        if not self.email and not self.phone:
            raise ValueError("Email or phone is required")
        return self


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class StaffCreate(BaseModel):
    """Admin-created account. Customers register themselves."""
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: UserRole

    @field_validator("role")
    @classmethod
    def validate_staff_role(cls, v: UserRole) -> UserRole:
        if v not in STAFF_ROLES:
            raise ValueError(f"Role must be one of: {[r.value for r in STAFF_ROLES]}")
        return v

    @model_validator(mode="after")
    def require_contact(self) -> "StaffCreate":
        if not self.email and not self.phone:
            raise ValueError("Email or phone is required")
        return self


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    limit: int
    offset: int


# =============================================================================
# MENU
# =============================================================================

class VariantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)


class AddonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(0.0, ge=0)


class VariantResponse(BaseModel):
    id: str
    name: str
    price: float

    class Config:
        from_attributes = True


class AddonResponse(BaseModel):
    id: str
    name: str
    price: float

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)
    display_order: int = Field(0, ge=0)
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CategorySummary(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)
    category_id: str
    base_price: float = Field(..., ge=0)
    is_available: bool = True
    display_order: int = Field(0, ge=0)
    variants: List[VariantCreate] = Field(default_factory=list)
    addons: List[AddonCreate] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Item name is required")
        return v

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: Optional[str]) -> Optional[str]:
        v = _strip_optional(v)
        if v and not (v.startswith("/") or v.startswith("http://") or v.startswith("https://")):
            raise ValueError("Image must be a valid URL or relative path")
        return v


class MenuItemUpdate(BaseModel):
    """Partial update. Variant and add-on lists, when sent, replace the existing ones."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)
    category_id: Optional[str] = None
    base_price: Optional[float] = Field(None, ge=0)
    is_available: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)
    variants: Optional[List[VariantCreate]] = None
    addons: Optional[List[AddonCreate]] = None


class MenuItemResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    category_id: str
    base_price: float
    is_available: bool
    display_order: int
    variants: List[VariantResponse] = []
    addons: List[AddonResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MenuItemDetailResponse(MenuItemResponse):
    category: CategorySummary


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    display_order: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryWithItemsResponse(CategoryResponse):
    items: List[MenuItemResponse] = []


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single line in a new order."""
    menu_item_id: str
    variant_id: Optional[str] = None
    addon_ids: List[str] = Field(default_factory=list)
    quantity: int = Field(..., ge=1, le=100)
    notes: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    order_type: OrderType
    items: List[OrderItemCreate] = Field(..., min_length=1)
    table_number: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)
    delivery_address: Optional[str] = Field(None, max_length=500)
    contact_phone: Optional[str] = Field(None, max_length=30)
    discount: float = Field(0.0, ge=0)

    @field_validator("table_number", "delivery_address", "contact_phone")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class MenuItemSummary(BaseModel):
    id: str
    name: str
    image: Optional[str] = None
    base_price: float

    class Config:
        from_attributes = True


class OrderItemAddonResponse(BaseModel):
    id: str
    addon_id: str
    price: float
    addon: AddonResponse

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    id: str
    menu_item_id: str
    variant_id: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    notes: Optional[str] = None
    menu_item: MenuItemSummary
    variant: Optional[VariantResponse] = None
    addons: List[OrderItemAddonResponse] = []

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Full order as returned by the API and pushed over WebSocket."""
    id: str
    order_number: str
    order_type: OrderType
    status: OrderStatus
    table_number: Optional[str] = None
    notes: Optional[str] = None
    delivery_address: Optional[str] = None
    contact_phone: Optional[str] = None
    subtotal: float
    discount: float
    tax: float
    total: float
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus
    paystack_ref: Optional[str] = None
    customer_id: Optional[str] = None
    created_by_id: Optional[str] = None
    prepared_by_id: Optional[str] = None
    customer: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None
    prepared_by: Optional[UserSummary] = None
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: datetime
    ready_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderEnvelope(BaseModel):
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int
    limit: int
    offset: int


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentInitializeRequest(BaseModel):
    order_id: str = Field(..., min_length=1)


class PaymentVerifyRequest(BaseModel):
    reference: str = Field(..., min_length=1)


class PosPaymentRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    method: PaymentMethod
    amount: float = Field(..., ge=0)

    @field_validator("method")
    @classmethod
    def validate_counter_method(cls, v: PaymentMethod) -> PaymentMethod:
        if v == PaymentMethod.PAYSTACK:
            raise ValueError("Invalid payment method")
        return v


class OrderSummary(BaseModel):
    id: str
    order_number: str
    order_type: OrderType
    total: float
    customer: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: str
    order_id: str
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    paystack_ref: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionResponse(PaymentResponse):
    order: OrderSummary


class TransactionListResponse(BaseModel):
    payments: List[TransactionResponse]
    total: int
    total_amount: float
    limit: int
    offset: int


# =============================================================================
# SYSTEM SETTINGS
# =============================================================================

class SystemSettingsResponse(BaseModel):
    """Settings visible to everyone."""
    id: str
    restaurant_name: str
    restaurant_address: Optional[str] = None
    restaurant_phone: Optional[str] = None
    restaurant_email: Optional[str] = None
    restaurant_logo: Optional[str] = None
    tax_rate: float
    currency: str
    currency_symbol: str
    order_prefix: str
    auto_confirm_orders: bool
    require_payment_before_prep: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class AdminSystemSettingsResponse(SystemSettingsResponse):
    paystack_secret_key: Optional[str] = None
    paystack_public_key: Optional[str] = None
    paystack_webhook_secret: Optional[str] = None


class SystemSettingsUpdate(BaseModel):
    restaurant_name: Optional[str] = Field(None, max_length=150)
    restaurant_address: Optional[str] = None
    restaurant_phone: Optional[str] = Field(None, max_length=30)
    restaurant_email: Optional[EmailStr] = None
    restaurant_logo: Optional[str] = Field(None, max_length=500)
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    currency: Optional[str] = Field(None, max_length=10)
    currency_symbol: Optional[str] = Field(None, max_length=10)
    order_prefix: Optional[str] = Field(None, max_length=10)
    auto_confirm_orders: Optional[bool] = None
    require_payment_before_prep: Optional[bool] = None
    paystack_secret_key: Optional[str] = Field(None, max_length=255)
    paystack_public_key: Optional[str] = Field(None, max_length=255)
    paystack_webhook_secret: Optional[str] = Field(None, max_length=255)

    @field_validator("restaurant_name", "currency", "currency_symbol", "order_prefix")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("Must not be null")
        v = v.strip()
        if not v:
            raise ValueError("Must not be empty")
        return v

    @field_validator("tax_rate", "auto_confirm_orders", "require_payment_before_prep")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged; null would clear a required column
        if v is None:
            raise ValueError("Must not be null")
        return v


# =============================================================================
# DAY SESSION
# =============================================================================

class DaySessionResponse(BaseModel):
    id: str
    date: str
    is_closed: bool
    opened_at: datetime
    closed_at: Optional[datetime] = None
    closed_by_id: Optional[str] = None
    closed_by: Optional[UserSummary] = None
    total_orders: int
    total_revenue: float
    total_cash: float
    total_card: float
    total_momo: float
    total_paystack: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class DayCloseRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class DaySessionHistoryResponse(BaseModel):
    day_sessions: List[DaySessionResponse]
    pagination: Pagination


# =============================================================================
# CHAT
# =============================================================================

class ChatCreate(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=150)
    customer_email: Optional[str] = Field(None, max_length=255)

    @field_validator("customer_name", "customer_email")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class ChatMessageCreate(BaseModel):
    message: str = Field(..., max_length=5000)

    @field_validator("message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message is required")
        return v


class ChatStatusUpdate(BaseModel):
    status: ChatStatus


class ChatMessageResponse(BaseModel):
    id: str
    chat_id: str
    sender_id: Optional[str] = None
    sender_role: SenderRole
    sender_name: Optional[str] = None
    message: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ChatResponse(BaseModel):
    id: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    status: ChatStatus
    last_message_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class ChatDetailResponse(ChatResponse):
    messages: List[ChatMessageResponse] = []


class ChatSummaryResponse(ChatResponse):
    last_message: Optional[ChatMessageResponse] = None
    unread_count: int = 0


# =============================================================================
# AUDIT LOG
# =============================================================================

class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user: Optional[UserSummary] = None
    action: str
    entity: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    limit: int
    offset: int


# =============================================================================
# MISC
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
