"""
Entity Schemas for the Marketplace

Each Pydantic model represents a collection held by the in-memory Store.
Fields are snake_case; ids are opaque strings produced by Store.generate_id.
"""
from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List, Literal, Dict
from datetime import datetime

UserRole = Literal["customer", "seller", "admin"]
OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "completed", "cancelled"]


class User(BaseModel):
    id: str
    name: str
    email: EmailStr
    role: UserRole
    password_hash: str


class UserOut(BaseModel):
    """Public view of a user. Never carries the password hash."""
    id: str
    name: str
    email: EmailStr
    role: UserRole


class Product(BaseModel):
    id: str
    seller_id: str
    name: str
    description: str = ""
    price: float = Field(..., gt=0)
    stock_quantity: int = Field(..., ge=0)
    created_at: datetime


class CartItem(BaseModel):
    id: str
    user_id: str
    product_id: str
    quantity: int = Field(1, ge=1)


class CartLine(CartItem):
    product: Product
    total_price: float


class CartView(BaseModel):
    items: List[CartLine] = []
    total_items: int = 0
    subtotal: float = 0.0


class Order(BaseModel):
    id: str
    user_id: str
    subtotal: float
    discount_amount: float = 0.0
    total_amount: float
    status: OrderStatus = "pending"
    discount_code_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderItem(BaseModel):
    id: str
    order_id: str
    product_id: str
    quantity: int
    unit_price: float = Field(..., description="Product price at checkout time")
    total_price: float


class OrderDetail(BaseModel):
    order: Order
    items: List[OrderItem]


class DiscountCode(BaseModel):
    id: str
    code: str
    discount_percentage: float = Field(..., ge=1, le=100)
    customer_id: Optional[str] = Field(None, description="Customer the code is bound to")
    generated_by_seller_id: str
    is_used: bool = False
    used_on_order_id: Optional[str] = None
    created_at: datetime
    expires_at: datetime


class DiscountValidation(BaseModel):
    valid: bool
    reason: Optional[str] = None
    discount_code: Optional[DiscountCode] = None


class AppliedDiscount(BaseModel):
    code: str
    discount_amount: float


class CheckoutResult(BaseModel):
    order: Order
    items: List[OrderItem]
    applied_discount: Optional[AppliedDiscount] = None


class StatusUpdateResult(BaseModel):
    order: Order
    discount_generated: Optional[DiscountCode] = None


class StoreConfig(BaseModel):
    discount_n_value: int = Field(3, ge=1, description="Every n-th completed order earns a code")
    discount_percentage: float = Field(10, ge=1, le=100)


class ProductSales(BaseModel):
    name: str
    quantity: int = 0
    revenue: float = 0.0


class StoreAnalytics(BaseModel):
    total_revenue: float
    total_items_sold: int
    total_orders: int
    total_discount_codes_generated: int
    total_discount_amount: float
    average_order_value: float


class SellerAnalytics(BaseModel):
    seller_id: str
    total_revenue: float
    items_sold: int
    orders_count: int
    products_sold: Dict[str, ProductSales] = {}
