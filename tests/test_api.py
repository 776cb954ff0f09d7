# tests/test_api.py
import pytest

from tests.conftest import PNG_BYTES, auth_headers

API = "/api/v1"


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def manufacturer_id(client, admin_headers):
    category = client.post(
        f"{API}/categories",
        json={"name": "Welding Machines"},
        headers=admin_headers,
    )
    assert category.status_code == 201, category.text
    response = client.post(
        f"{API}/manufacturers",
        json={"name": "Lincoln Electric", "category_ids": [category.json()["id"]]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.fixture
def product(client, admin_headers, manufacturer_id):
    response = client.post(
        f"{API}/products",
        json={"name": "Arc Welder", "price": 250.0, "manufacturer_id": manufacturer_id},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_root_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# --- Catalogue ---


def test_create_product_generates_identifiers(product):
    assert product["slug"] == "arc-welder"
    assert product["sku"].startswith("SSEW-WEL-LIN-ARC-")
    assert product["variant_type"] == "STANDALONE"
    assert product["manufacturer_name"] == "Lincoln Electric"


def test_catalogue_is_public(client, product):
    listing = client.get(f"{API}/products")
    assert listing.status_code == 200
    assert [p["id"] for p in listing.json()] == [product["id"]]

    assert client.get(f"{API}/products/slug/arc-welder").json()["id"] == product["id"]
    assert client.get(f"{API}/products/sku/{product['sku']}").json()["id"] == product["id"]


def test_writes_require_admin(client, customer_headers, manufacturer_id):
    payload = {"name": "Arc Welder", "price": 250.0, "manufacturer_id": manufacturer_id}

    assert client.post(f"{API}/products", json=payload).status_code == 401
    assert client.post(f"{API}/products", json=payload, headers=customer_headers).status_code == 403


def test_invalid_token_is_rejected(client):
    response = client.get(f"{API}/cart", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_duplicate_manufacturer_name(client, admin_headers, manufacturer_id):
    response = client.post(
        f"{API}/manufacturers",
        json={"name": "lincoln electric"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_manufacturer_with_products_cannot_be_deleted(client, admin_headers, manufacturer_id, product):
    response = client.delete(f"{API}/manufacturers/{manufacturer_id}", headers=admin_headers)
    assert response.status_code == 400


def test_variant_endpoints(client, admin_headers, product):
    created = client.post(
        f"{API}/products/{product['id']}/variants",
        json={"name": "Arc Welder 160A"},
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    variant = created.json()
    assert variant["variant_position"] == 1
    assert variant["parent_id"] == product["id"]

    nested = client.post(
        f"{API}/products/{variant['id']}/variants",
        json={"name": "Nested"},
        headers=admin_headers,
    )
    assert nested.status_code == 400

    assert client.delete(f"{API}/products/{product['id']}", headers=admin_headers).status_code == 400

    variants = client.get(f"{API}/products/{product['id']}/variants").json()
    assert [v["id"] for v in variants] == [variant["id"]]

    # variants are hidden from the default listing
    assert [p["id"] for p in client.get(f"{API}/products").json()] == [product["id"]]


def test_thumbnail_upload_and_read_url(client, admin_headers, product, storage):
    response = client.post(
        f"{API}/products/{product['id']}/thumbnail",
        files={"file": ("thumb.png", PNG_BYTES, "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    key = body["thumbnail_object_key"]
    assert key.startswith(f"products/{product['id']}/thumbnails/")
    assert key in storage.blobs
    assert body["thumbnail_url"].startswith("https://storage.test/")

    url = client.get(f"{API}/products/images/url", params={"key": key})
    assert url.status_code == 200
    assert url.json()["url"].startswith("https://storage.test/")

    missing = client.get(f"{API}/products/images/url", params={"key": "products/x/images/gone.png"})
    assert missing.status_code == 404


def test_unsupported_upload_type(client, admin_headers, product):
    response = client.post(
        f"{API}/products/{product['id']}/images",
        files=[("files", ("doc.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=admin_headers,
    )
    assert response.status_code == 400


# --- Cart and orders ---


def test_checkout_and_status_flow(client, admin_headers, customer_headers, product, publisher):
    added = client.post(
        f"{API}/cart/items",
        json={"product_id": product["id"], "quantity": 2},
        headers=customer_headers,
    )
    assert added.status_code == 200, added.text
    assert added.json()["total_amount"] == 500.0

    assert client.post(f"{API}/cart/items", json={"product_id": product["id"]}, headers=admin_headers).status_code == 403

    checkout = client.post(
        f"{API}/orders/checkout",
        json={
            "customer_name": "Ravi Kumar",
            "phone_number": "9876543210",
            "street": "12 Main St",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411001",
        },
        headers=customer_headers,
    )
    assert checkout.status_code == 201, checkout.text
    order = checkout.json()
    assert order["status"] == "PLACED"
    assert order["total_amount"] == 500.0
    assert publisher.new_orders

    status_url = f"{API}/orders/{order['id']}/status"
    assert client.patch(status_url, json={"status": "CONFIRMED"}, headers=customer_headers).status_code == 403
    assert client.patch(status_url, json={"status": "CANCELLED"}, headers=admin_headers).status_code == 400

    confirmed = client.patch(status_url, json={"status": "CONFIRMED"}, headers=admin_headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "CONFIRMED"

    mine = client.get(f"{API}/orders/me", headers=customer_headers).json()
    assert [o["id"] for o in mine] == [order["id"]]

    cancel = client.post(f"{API}/orders/me/{order['id']}/cancel", headers=customer_headers)
    assert cancel.status_code == 400


def test_checkout_requires_address(client, customer_headers):
    response = client.post(
        f"{API}/orders/checkout",
        json={
            "customer_name": " ",
            "phone_number": "9876543210",
            "street": "12 Main St",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411001",
        },
        headers=customer_headers,
    )
    assert response.status_code == 422


def test_admin_dashboard(client, admin_headers, customer_headers, product):
    assert client.get(f"{API}/admin/stats", headers=customer_headers).status_code == 403

    response = client.get(f"{API}/admin/stats", headers=admin_headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["total_customers"] == 1
    assert body["products"]["total_products"] == 1
    assert body["orders"]["total_orders"] == 0
