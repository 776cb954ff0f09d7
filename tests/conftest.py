# tests/conftest.py
import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read at import time, so the test environment goes first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "http://localhost:54321"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_NOTIFICATION_EMAIL"] = ""
os.environ["SMTP_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from commerce.core.notifications import get_event_publisher  # noqa: E402
from commerce.core.outcome import Outcome  # noqa: E402
from commerce.core.storage import get_storage  # noqa: E402
from commerce.database import engine, get_session  # noqa: E402
from commerce.main import app  # noqa: E402
from commerce.models.catalogue import Category, Manufacturer  # noqa: E402
from commerce.models.product import Product  # noqa: E402
from commerce.models.user import ROLE_ADMIN, ROLE_USER, User  # noqa: E402
from commerce.repositories.cart_repo import CartRepository  # noqa: E402
from commerce.repositories.catalogue_repo import CatalogueRepository  # noqa: E402
from commerce.repositories.order_repo import OrderRepository  # noqa: E402
from commerce.repositories.product_repo import ProductRepository  # noqa: E402
from commerce.repositories.stats_repo import StatsRepository  # noqa: E402
from commerce.schemas.product import ProductCreate  # noqa: E402
from commerce.services.cart_service import CartService  # noqa: E402
from commerce.services.order_service import OrderService  # noqa: E402
from commerce.services.product_image_service import ProductImageService  # noqa: E402
from commerce.services.product_service import ProductService  # noqa: E402

JWT_SECRET = "test-jwt-secret"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


# --- Collaborators ---


class FakeStorage:
    """
    In-memory object storage with the same contract as
    SupabaseObjectStorage.

      - broken:    every call raises
      - fail_urls: only read URL generation raises
    """

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.broken = False
        self.fail_urls = False

    def _check(self):
        if self.broken:
            raise RuntimeError("storage unavailable")

    def upload(self, key: str, file_bytes: bytes, content_type: str) -> str:
        self._check()
        self.blobs[key] = file_bytes
        return key

    def exists(self, key: str) -> bool:
        self._check()
        return key in self.blobs

    def delete(self, key: str) -> bool:
        return not self.delete_batch([key])

    def delete_batch(self, keys: list[str]) -> list[str]:
        self._check()
        failed = []
        for key in keys:
            if self.blobs.pop(key, None) is None:
                failed.append(key)
            else:
                self.deleted.append(key)
        return failed

    def generate_read_url(self, key: str, ttl_minutes: int) -> dict:
        self._check()
        if self.fail_urls:
            raise RuntimeError("signing failed")
        return {
            "url": f"https://storage.test/{key}?ttl={ttl_minutes}",
            "expires_at": datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes),
        }


class RecordingPublisher:
    def __init__(self):
        self.new_orders: list[uuid.UUID] = []
        self.status_changes: list[tuple] = []

    def publish_new_order(self, order) -> Outcome:
        self.new_orders.append(order.id)
        return Outcome()

    def publish_status_change(self, order, previous_status, kind="STATUS_UPDATE") -> Outcome:
        self.status_changes.append((order.id, previous_status, order.status, kind))
        return Outcome()


# --- Database ---


@pytest.fixture
def session():
    """
    Fresh schema per test on the shared in-memory SQLite engine.
    """
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def publisher():
    return RecordingPublisher()


# --- Services ---


@pytest.fixture
def image_service(storage):
    return ProductImageService(ProductRepository(), storage)


@pytest.fixture
def product_service(image_service):
    return ProductService(
        ProductRepository(),
        CatalogueRepository(),
        CartRepository(),
        OrderRepository(),
        image_service,
    )


@pytest.fixture
def cart_service():
    return CartService(CartRepository(), ProductRepository())


@pytest.fixture
def order_service(cart_service, image_service, publisher):
    return OrderService(
        OrderRepository(),
        CartRepository(),
        cart_service,
        StatsRepository(),
        image_service,
        publisher,
    )


# --- Data ---


@pytest.fixture
def manufacturer(session):
    category = Category(name="Welding Machines", slug="welding-machines")
    manufacturer = Manufacturer(name="Lincoln Electric", slug="lincoln-electric")
    manufacturer.categories = [category]
    session.add(manufacturer)
    session.commit()
    session.refresh(manufacturer)
    return manufacturer


@pytest.fixture
def make_product(session, product_service, manufacturer):
    """
    Create a product through the service and return the mapped row.
    """

    def _make(name: str, price: float = 100.0, **fields) -> Product:
        read = product_service.create_product(
            session,
            ProductCreate(
                name=name,
                price=price,
                manufacturer_id=manufacturer.id,
                **fields,
            ),
        )
        return session.get(Product, read.id)

    return _make


def _make_user(session: Session, role: str, email: str) -> User:
    user = User(id=uuid.uuid4(), email=email, name=email.split("@")[0], role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def customer(session):
    return _make_user(session, ROLE_USER, "ravi@example.com")


@pytest.fixture
def other_customer(session):
    return _make_user(session, ROLE_USER, "meera@example.com")


@pytest.fixture
def admin(session):
    return _make_user(session, ROLE_ADMIN, "admin@example.com")


# --- HTTP ---


def auth_headers(user: User) -> dict[str, str]:
    token = jwt.encode(
        {
            "sub": str(user.id),
            "email": user.email,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        },
        JWT_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session, storage, publisher):
    def _get_session():
        yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
