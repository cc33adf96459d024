import hashlib
import hmac
import os

# Settings are read at import time, so the test environment has to be in place first
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("AUTO_REJECT_SWEEP_SECONDS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.config import settings
from core.database import Base
from models.products import Product
from schemas.order_schemas import CreateOrderRequest
from services.order_service import OrderService
from utils.deps import get_db, get_payment_gateway

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

CUSTOMER_ID = "cust-1"
SELLER_ID = "seller-1"

ADDRESS = {
    "name": "Asha Kumar",
    "phone": "+919876543210",
    "address": "12 MG Road",
    "landmark": "Near the park",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001"
}


class FakeGateway:
    """
    Stands in for RazorpayGateway. Signatures are checked the same way
    Razorpay does it, so tests can produce valid ones with sign_payment().
    """
    key_id = "rzp_test_key"

    def __init__(self):
        self.created = []

    def create_order(self, amount, currency, receipt, notes=None):
        gateway_order = {
            "id": f"order_fake{len(self.created) + 1}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {}
        }
        self.created.append(gateway_order)
        return gateway_order

    def verify_signature(self, order_id, payment_id, signature):
        return hmac.compare_digest(sign_payment(order_id, payment_id), signature)

    def sign(self, order_id, payment_id):
        return sign_payment(order_id, payment_id)


def sign_payment(order_id: str, payment_id: str) -> str:
    return hmac.new(
        settings.RAZORPAY_KEY_SECRET.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256
    ).hexdigest()


def make_token(user_id: str, role: str = "customer") -> str:
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=30)
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(user_id: str, role: str = "customer") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


def build_order_payload(products, payment_method="COD", user_id=CUSTOMER_ID, seller_id=SELLER_ID):
    """
    Checkout body for the given catalog products as [(product, quantity), ...],
    with the totals the frontend would compute.
    """
    subtotal = sum(Decimal(str(product.price)) * qty for product, qty in products)
    delivery_fee = Decimal("0") if subtotal >= Decimal(str(settings.FREE_DELIVERY_THRESHOLD)) \
        else Decimal(str(settings.DELIVERY_FEE))
    return {
        "userId": user_id,
        "products": [
            {
                "id": str(product.id),
                "name": product.name,
                "price": float(product.price),
                "quantity": qty,
                "image": product.image_url,
                "isVeg": product.is_veg
            }
            for product, qty in products
        ],
        "subtotal": float(subtotal),
        "deliveryFee": float(delivery_fee),
        "totalAmount": float(subtotal + delivery_fee),
        "paymentMethod": payment_method,
        "deliveryAddress": dict(ADDRESS),
        "storeDetails": {"sellerId": seller_id, "sellerCollection": f"products_{seller_id}"}
    }


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def catalog(session: Session) -> dict[str, Product]:
    """
    Seller catalog: tomatoes 45.00, milk 30.00, paneer 90.00, all for SELLER_ID.
    """
    products = {
        "tomato": Product(seller_id=SELLER_ID, name="Tomato 1kg", category="vegetables",
                          price=Decimal("45.00"), image_url="/img/tomato.png", is_veg=True, stock=100),
        "milk": Product(seller_id=SELLER_ID, name="Milk 1L", category="dairy",
                        price=Decimal("30.00"), image_url="/img/milk.png", is_veg=True, stock=50),
        "paneer": Product(seller_id=SELLER_ID, name="Paneer 500g", category="dairy",
                          price=Decimal("90.00"), image_url="/img/paneer.png", is_veg=True, stock=20),
    }
    session.add_all(products.values())
    session.commit()
    for product in products.values():
        session.refresh(product)
    return products


@pytest.fixture
async def client(session: Session, gateway: FakeGateway):
    """
    HTTP client talking to the app with the test database and fake gateway.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass  # Session cleanup handled by session fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def customer_headers() -> dict:
    return auth_headers(CUSTOMER_ID, "customer")


@pytest.fixture
def seller_headers() -> dict:
    return auth_headers(SELLER_ID, "seller")


@pytest.fixture
def place_order(client, catalog, customer_headers):
    """
    Places an order over HTTP and returns the response JSON.
    Default basket: 10 x tomato = 450.00 (+50 delivery).
    """
    async def _place(items=None, payment_method="COD"):
        items = items or [(catalog["tomato"], 10)]
        response = await client.post(
            "/orders/create",
            json=build_order_payload(items, payment_method=payment_method),
            headers=customer_headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _place


@pytest.fixture
def order_payload():
    return build_order_payload


@pytest.fixture
def make_order(session, gateway, catalog):
    """
    Places an order through OrderService at a fixed time and returns it.
    Default basket: 10 x tomato = 450.00 (+50 delivery).
    """
    def _make(placed_at, items=None, payment_method="COD"):
        items = items or [(catalog["tomato"], 10)]
        body = CreateOrderRequest.model_validate(build_order_payload(items, payment_method=payment_method))
        order, _ = OrderService.create_order(session, gateway, body, now=placed_at)
        return order

    return _make


@pytest.fixture
def headers_for():
    return auth_headers
