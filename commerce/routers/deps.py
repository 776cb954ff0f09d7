# commerce/routers/deps.py
"""
Service providers for the routers.

Repositories are stateless and shared. Services that talk to object
storage or publish notifications are built per request from the
get_storage / get_event_publisher dependencies, so tests can swap those
collaborators through app.dependency_overrides.
"""
from fastapi import Depends

from commerce.core.notifications import OrderEventPublisher, get_event_publisher
from commerce.core.storage import SupabaseObjectStorage, get_storage
from commerce.repositories.cart_repo import CartRepository
from commerce.repositories.catalogue_repo import CatalogueRepository
from commerce.repositories.order_repo import OrderRepository
from commerce.repositories.product_repo import ProductRepository
from commerce.repositories.stats_repo import StatsRepository
from commerce.services.cart_service import CartService
from commerce.services.catalogue_service import CatalogueService
from commerce.services.order_service import OrderService
from commerce.services.product_image_service import ProductImageService
from commerce.services.product_service import ProductService
from commerce.services.stats_service import StatsService

product_repo = ProductRepository()
catalogue_repo = CatalogueRepository()
cart_repo = CartRepository()
order_repo = OrderRepository()
stats_repo = StatsRepository()

cart_service = CartService(cart_repo, product_repo)
stats_service = StatsService(stats_repo, product_repo)


def get_image_service(
    storage: SupabaseObjectStorage = Depends(get_storage),
) -> ProductImageService:
    return ProductImageService(product_repo, storage)


def get_product_service(
    images: ProductImageService = Depends(get_image_service),
) -> ProductService:
    return ProductService(product_repo, catalogue_repo, cart_repo, order_repo, images)


def get_catalogue_service(
    storage: SupabaseObjectStorage = Depends(get_storage),
) -> CatalogueService:
    return CatalogueService(catalogue_repo, storage)


def get_cart_service() -> CartService:
    return cart_service


def get_order_service(
    images: ProductImageService = Depends(get_image_service),
    publisher: OrderEventPublisher = Depends(get_event_publisher),
) -> OrderService:
    return OrderService(order_repo, cart_repo, cart_service, stats_repo, images, publisher)


def get_stats_service() -> StatsService:
    return stats_service
