from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from epharmacy.utils.pagination import Pagination


# --------------------
# Users
# --------------------


class UserProfile(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    role: str
    is_active: bool
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str


class UserContact(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


# --------------------
# Pharmacies
# --------------------


class PharmacySummary(BaseModel):
    id: int
    name: str
    phone: str
    address: str
    is_verified: bool

    model_config = ConfigDict(from_attributes=True)


class Pharmacy(PharmacySummary):
    email: EmailStr
    license_number: Optional[str] = None
    is_active: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --------------------
# Products
# --------------------


ProductStatusValue = Literal["active", "inactive", "pending_approval"]


class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    price: float = Field(gt=0)
    stock_quantity: int = Field(ge=0)
    category: str = Field(min_length=1)
    requires_prescription: bool = False
    image_url: Optional[str] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    requires_prescription: Optional[bool] = None
    image_url: Optional[str] = None


class Product(ProductBase):
    id: int
    status: str
    pharmacy_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductDetail(Product):
    pharmacy: Optional[PharmacySummary] = None


class ProductPage(BaseModel):
    products: List[ProductDetail]
    pagination: Pagination


# --------------------
# Prescriptions
# --------------------


PrescriptionStatusValue = Literal["pending", "approved", "rejected"]


class Prescription(BaseModel):
    id: int
    original_name: Optional[str] = None
    file_name: str
    file_size: int
    mime_type: str
    status: str
    admin_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PrescriptionAdmin(Prescription):
    approved_by: Optional[int] = None
    user: Optional[UserContact] = None


class PrescriptionPage(BaseModel):
    prescriptions: List[Prescription]
    pagination: Pagination


class PrescriptionAdminPage(BaseModel):
    prescriptions: List[PrescriptionAdmin]
    pagination: Pagination


class PrescriptionReviewIn(BaseModel):
    status: Literal["approved", "rejected"]
    admin_notes: Optional[str] = None


# --------------------
# Orders
# --------------------


OrderStatusValue = Literal["pending", "approved", "shipped", "delivered", "cancelled"]


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    items: List[OrderItemIn]
    shipping_address: str
    prescription_id: Optional[int] = None
    notes: Optional[str] = None


class OrderItemProduct(BaseModel):
    id: int
    name: str
    category: str
    image_url: Optional[str] = None
    requires_prescription: bool
    pharmacy_id: int

    model_config = ConfigDict(from_attributes=True)


class OrderItem(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_price: float
    total_price: float
    product: Optional[OrderItemProduct] = None

    model_config = ConfigDict(from_attributes=True)


class OrderSummary(BaseModel):
    id: int
    total_amount: float
    status: str
    shipping_address: str
    tracking_number: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Order(OrderSummary):
    user_id: int
    prescription_id: Optional[int] = None
    assigned_pharmacy_id: Optional[int] = None
    estimated_delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    updated_at: datetime
    order_items: List[OrderItem] = []

    model_config = ConfigDict(from_attributes=True)


class OrderAdmin(Order):
    user: Optional[UserContact] = None


class OrderTracking(BaseModel):
    id: int
    status: str
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    order_items: List[OrderItem] = []

    model_config = ConfigDict(from_attributes=True)


class OrderPage(BaseModel):
    orders: List[Order]
    pagination: Pagination


class OrderAdminPage(BaseModel):
    orders: List[OrderAdmin]
    pagination: Pagination


class OrderStatusUpdate(BaseModel):
    status: OrderStatusValue
    estimated_delivery_date: Optional[datetime] = None


# --------------------
# Payments
# --------------------


PaymentMethodValue = Literal["card", "bank_transfer", "mobile_money"]


class PaymentDetails(BaseModel):
    card_number: Optional[str] = None
    card_expiry: Optional[str] = None
    card_cvc: Optional[str] = None
    bank_account: Optional[str] = None
    phone_number: Optional[str] = None


class PaymentIn(BaseModel):
    order_id: int
    payment_method: PaymentMethodValue
    amount: float
    currency: str = "USD"
    payment_details: Optional[PaymentDetails] = None


class PaymentResult(BaseModel):
    success: bool
    transaction_id: str
    payment_method: str
    amount: float
    currency: str = "USD"
    status: Literal["completed", "pending", "failed"]
    message: str


class PaymentStatusOut(BaseModel):
    order_id: int
    payment_status: str
    transaction_id: Optional[str] = None
    amount: float
    order_status: str


class RefundIn(BaseModel):
    order_id: int
    reason: str = Field(min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)


class RefundResult(BaseModel):
    success: bool
    refund_id: str
    amount: float
    message: str


# --------------------
# Admin
# --------------------


class UserAdmin(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    phone: Optional[str] = None
    role: str
    is_active: bool
    is_email_verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserAdminPage(BaseModel):
    users: List[UserAdmin]
    pagination: Pagination


class PharmacyPage(BaseModel):
    pharmacies: List[Pharmacy]
    pagination: Pagination


class ToggleStatusOut(BaseModel):
    is_active: bool


class CountTotal(BaseModel):
    total: int


class PharmacyCounts(BaseModel):
    total: int
    verified: int
    pending: int


class ProductCounts(BaseModel):
    total: int
    active: int
    pending: int


class PrescriptionCounts(BaseModel):
    pending: int
    approved: int
    rejected: int


class OrderCounts(BaseModel):
    total: int
    pending: int
    delivered: int


class Revenue(BaseModel):
    total: float


class DashboardStatistics(BaseModel):
    users: CountTotal
    pharmacies: PharmacyCounts
    products: ProductCounts
    prescriptions: PrescriptionCounts
    orders: OrderCounts
    revenue: Revenue


class RecentOrder(BaseModel):
    id: int
    total_amount: float
    status: str
    created_at: datetime
    user: Optional[UserContact] = None

    model_config = ConfigDict(from_attributes=True)


class RecentPrescription(BaseModel):
    id: int
    original_name: Optional[str] = None
    status: str
    created_at: datetime
    user: Optional[UserContact] = None

    model_config = ConfigDict(from_attributes=True)


class RecentActivities(BaseModel):
    orders: List[RecentOrder]
    prescriptions: List[RecentPrescription]


class Dashboard(BaseModel):
    statistics: DashboardStatistics
    recent_activities: RecentActivities
