import os
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from analytics import AnalyticsService, DateRange
from auth import Identity, TokenIssuer, check_credentials, require_roles
from cart import CartService
from database import Store
from discounts import DiscountService
from errors import NotFound
from orders import OrderService
from products import ProductService
from schemas import (
    CartItem,
    CartView,
    CheckoutResult,
    DiscountCode,
    DiscountValidation,
    Order,
    OrderDetail,
    OrderItem,
    OrderStatus,
    Product,
    StatusUpdateResult,
    StoreConfig,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------------------- Wiring ----------------------

class Services:
    """Everything a request handler needs, built around a single Store."""

    def __init__(self, store: Store):
        self.store = store
        self.products = ProductService(store)
        self.cart = CartService(store)
        self.discounts = DiscountService(store)
        self.orders = OrderService(store, self.cart, self.discounts)
        self.analytics = AnalyticsService(store)


def services(request: Request) -> Services:
    return request.app.state.services


any_user = require_roles()
seller_only = require_roles("seller")
admin_only = require_roles("admin")


def public_user(user) -> UserOut:
    return UserOut(**user.model_dump(exclude={"password_hash"}))


def date_range(start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Optional[DateRange]:
    if not start_date and not end_date:
        return None
    return DateRange(start_date=start_date, end_date=end_date)

# ---------------------- Models ----------------------

class LoginBody(BaseModel):
    user_id: str
    password: str

class AddToCartBody(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)

class CheckoutBody(BaseModel):
    discount_code: Optional[str] = None

class StatusBody(BaseModel):
    status: OrderStatus

class ProductBody(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., gt=0)
    stock_quantity: int = Field(..., ge=0)

class ProductUpdateBody(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    stock_quantity: Optional[int] = Field(None, ge=0)

class ValidateDiscountBody(BaseModel):
    code: str
    subtotal: Optional[float] = Field(None, ge=0)

class CalculateDiscountBody(BaseModel):
    code: str
    subtotal: float = Field(..., ge=0)

class GenerateDiscountBody(BaseModel):
    discount_percentage: float = Field(..., ge=1, le=100)
    customer_id: Optional[str] = None
    expires_at: Optional[datetime] = None

class ConfigBody(BaseModel):
    discount_n_value: Optional[int] = Field(None, ge=1)
    discount_percentage: Optional[float] = Field(None, ge=1, le=100)


def create_app(store: Optional[Store] = None, tokens: Optional[TokenIssuer] = None) -> FastAPI:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Marketplace API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.services = Services(store or Store())
    app.state.tokens = tokens or TokenIssuer()
    app.include_router(router)
    return app

# ---------------------- Routes ----------------------

@router.get("/")
def read_root():
    return {"message": "Marketplace API running"}


@router.get("/schema")
def get_schema():
    def model_fields(m):
        return {k: str(v.annotation) for k, v in m.model_fields.items()}
    return {
        "models": {
            "user": model_fields(UserOut),
            "product": model_fields(Product),
            "cart_item": model_fields(CartItem),
            "order": model_fields(Order),
            "order_item": model_fields(OrderItem),
            "discount_code": model_fields(DiscountCode),
            "store_config": model_fields(StoreConfig),
        }
    }

# ---------------------- Auth & Users ----------------------

@router.post("/auth/login")
def login(body: LoginBody, request: Request, s: Services = Depends(services)):
    user = check_credentials(s.store, body.user_id, body.password)
    token = request.app.state.tokens.issue(user)
    return {"token": token, "user": public_user(user)}


@router.get("/users", response_model=List[UserOut])
def list_users(_: Identity = Depends(admin_only), s: Services = Depends(services)):
    return [public_user(u) for u in s.store.all_users()]


@router.get("/users/{uid}", response_model=UserOut)
def get_user(uid: str, _: Identity = Depends(any_user), s: Services = Depends(services)):
    user = s.store.get_user(uid)
    if not user:
        raise NotFound("User not found")
    return public_user(user)

# ---------------------- Products ----------------------

@router.get("/products", response_model=List[Product])
def list_products(s: Services = Depends(services)):
    return s.products.list_all()


@router.get("/products/{pid}", response_model=Product)
def get_product(pid: str, s: Services = Depends(services)):
    product = s.products.get(pid)
    if not product:
        raise NotFound("Product not found")
    return product


@router.get("/seller/products", response_model=List[Product])
def my_products(me: Identity = Depends(seller_only), s: Services = Depends(services)):
    return s.products.list_by_seller(me.user_id)


@router.post("/seller/products", response_model=Product, status_code=201)
def create_product(body: ProductBody, me: Identity = Depends(seller_only), s: Services = Depends(services)):
    return s.products.create(me.user_id, **body.model_dump())


@router.put("/seller/products/{pid}", response_model=Product)
def update_product(pid: str, body: ProductUpdateBody, me: Identity = Depends(seller_only),
                   s: Services = Depends(services)):
    return s.products.update(pid, me.user_id, **body.model_dump(exclude_none=True))


@router.delete("/seller/products/{pid}")
def delete_product(pid: str, me: Identity = Depends(seller_only), s: Services = Depends(services)):
    s.products.delete(pid, me.user_id)
    return {"ok": True}

# ---------------------- Cart ----------------------

@router.get("/cart", response_model=CartView)
def get_cart(me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.cart.get_cart(me.user_id)


@router.post("/cart/add", response_model=CartView)
def add_to_cart(body: AddToCartBody, me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.cart.add_to_cart(me.user_id, body.product_id, body.quantity)


@router.delete("/cart/{product_id}", response_model=CartView)
def remove_from_cart(product_id: str, me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.cart.remove_from_cart(me.user_id, product_id)

# ---------------------- Orders ----------------------

@router.post("/orders/checkout", response_model=CheckoutResult, status_code=201)
def checkout(body: CheckoutBody, me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.orders.checkout(me.user_id, body.discount_code)


@router.get("/orders", response_model=List[Order])
def my_orders(me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.orders.orders_for_user(me.user_id)


@router.get("/orders/{oid_str}", response_model=OrderDetail)
def get_order(oid_str: str, me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.orders.get_order(oid_str, me.user_id, is_admin=me.role == "admin")


@router.get("/seller/orders", response_model=List[OrderDetail])
def seller_orders(me: Identity = Depends(seller_only), s: Services = Depends(services)):
    return s.orders.orders_for_seller(me.user_id)


@router.put("/seller/orders/{oid_str}/status", response_model=StatusUpdateResult)
def update_order_status(oid_str: str, body: StatusBody, me: Identity = Depends(seller_only),
                        s: Services = Depends(services)):
    return s.orders.update_status(oid_str, me.user_id, body.status)


@router.get("/admin/orders", response_model=List[Order])
def all_orders(_: Identity = Depends(admin_only), s: Services = Depends(services)):
    return s.orders.all_orders()

# ---------------------- Discounts ----------------------

@router.post("/discounts/validate")
def validate_discount(body: ValidateDiscountBody, me: Identity = Depends(any_user),
                      s: Services = Depends(services)):
    result: DiscountValidation = s.discounts.validate(body.code, me.user_id)
    out = result.model_dump()
    if result.valid and body.subtotal is not None:
        out["discount_amount"] = s.discounts.calculate_amount(body.code, body.subtotal)
    return out


@router.post("/discounts/calculate")
def calculate_discount(body: CalculateDiscountBody, _: Identity = Depends(any_user),
                       s: Services = Depends(services)):
    return {"code": body.code, "subtotal": body.subtotal,
            "discount_amount": s.discounts.calculate_amount(body.code, body.subtotal)}


@router.get("/discounts", response_model=List[DiscountCode])
def my_discounts(me: Identity = Depends(any_user), s: Services = Depends(services)):
    return s.discounts.for_customer(me.user_id)


@router.get("/seller/discounts", response_model=List[DiscountCode])
def seller_discounts(me: Identity = Depends(seller_only), s: Services = Depends(services)):
    return s.discounts.for_seller(me.user_id)


@router.post("/seller/discounts", response_model=DiscountCode, status_code=201)
def generate_discount(body: GenerateDiscountBody, me: Identity = Depends(seller_only),
                      s: Services = Depends(services)):
    return s.discounts.generate(me.user_id, body.discount_percentage, body.customer_id, body.expires_at)


@router.get("/admin/discounts", response_model=List[DiscountCode])
def all_discounts(_: Identity = Depends(admin_only), s: Services = Depends(services)):
    return s.discounts.all_codes()

# ---------------------- Config ----------------------

@router.get("/config", response_model=StoreConfig)
def get_config(s: Services = Depends(services)):
    return s.store.get_config()


@router.put("/admin/config", response_model=StoreConfig)
def update_config(body: ConfigBody, me: Identity = Depends(admin_only), s: Services = Depends(services)):
    with s.store.lock:
        config = s.store.update_config(**body.model_dump(exclude_none=True))
    logger.info("Config updated by %s: %s", me.user_id, config.model_dump())
    return config

# ---------------------- Analytics ----------------------

@router.get("/seller/analytics")
def seller_analytics(start_date: Optional[datetime] = Query(None), end_date: Optional[datetime] = Query(None),
                     me: Identity = Depends(seller_only), s: Services = Depends(services)):
    return s.analytics.seller_analytics(me.user_id, date_range(start_date, end_date))


@router.get("/admin/analytics")
def admin_analytics(start_date: Optional[datetime] = Query(None), end_date: Optional[datetime] = Query(None),
                    _: Identity = Depends(admin_only), s: Services = Depends(services)):
    rng = date_range(start_date, end_date)
    return {
        "analytics": s.analytics.store_analytics(rng),
        "sellers_breakdown": s.analytics.all_sellers_analytics(rng),
    }


app = create_app()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
