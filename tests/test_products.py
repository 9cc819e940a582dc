"""Tests for Product API endpoints."""
from datetime import datetime

import pytest


def test_create_product(client):
    """Test creating a new product."""
    response = client.post(
        "/api/v1/products/",
        json={
            "name": "Test Product",
            "description": "A thing",
            "price": 99.99,
            "discountPrice": 89.99,
            "sku": "TP-1"
        }
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Test Product"
    assert data["price"] == 99.99
    assert data["discountPrice"] == 89.99
    assert data["sku"] == "TP-1"
    assert data["uid"]
    assert data["imageUrl"] is None
    assert "id" not in data
    assert datetime.fromisoformat(data["createdAt"]) <= datetime.fromisoformat(data["updatedAt"])


def test_create_product_generates_distinct_uids(create_product):
    first = create_product(sku="A")
    second = create_product(sku="A")

    assert first["uid"] != second["uid"]


def test_create_product_accepts_non_positive_price(client):
    """Prices are not constrained to be positive."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Freebie", "price": 0, "discountPrice": -5, "sku": "FREE"}
    )

    assert response.status_code == 201
    assert response.json()["price"] == 0
    assert response.json()["discountPrice"] == -5


def test_create_product_missing_sku(client):
    """Test creating product without required fields fails."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Test Product", "price": 10.0}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Validation failed"
    assert any(error["field"] == "sku" for error in body["errors"])


def test_create_product_empty_name(client):
    response = client.post(
        "/api/v1/products/",
        json={"name": "", "price": 10.0, "sku": "X"}
    )

    assert response.status_code == 400


def test_create_product_rejects_unknown_fields(client):
    """Extra fields are rejected rather than ignored."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Test", "price": 10.0, "sku": "X", "stock": 5}
    )

    assert response.status_code == 400


def test_create_product_rejects_non_numeric_price(client):
    response = client.post(
        "/api/v1/products/",
        json={"name": "Test", "price": "cheap", "sku": "X"}
    )

    assert response.status_code == 400


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
def test_create_product_rejects_non_finite_price(client, value):
    response = client.post(
        "/api/v1/products/",
        json={"name": "Test", "price": value, "sku": "X"}
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "price"
    assert client.get("/api/v1/products/").json()["pagination"]["total"] == 0


def test_get_product(client, create_product):
    """Test getting a product by UID."""
    created = create_product(name="Lamp", sku="LAMP-1")

    response = client.get(f"/api/v1/products/{created['uid']}")

    assert response.status_code == 200
    data = response.json()
    assert data["uid"] == created["uid"]
    assert data["name"] == "Lamp"


def test_get_product_not_found(client):
    """Test getting non-existent product returns 404."""
    response = client.get("/api/v1/products/does-not-exist")

    assert response.status_code == 404
    assert "does-not-exist" in response.json()["detail"]


def test_list_products(client, create_product):
    """Test listing products with pagination."""
    for i in range(15):
        create_product(name=f"Product {i}", price=10.00 + i, sku=f"P-{i}")

    response = client.get("/api/v1/products/?page=1&limit=10")

    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 10
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 15, "pages": 2}

    second = client.get("/api/v1/products/?page=2&limit=10").json()
    assert len(second["items"]) == 5
    assert second["pagination"]["total"] == 15

    uids = {p["uid"] for p in data["items"]} | {p["uid"] for p in second["items"]}
    assert len(uids) == 15


def test_list_products_defaults(client, create_product):
    """Newest products come first with 10 per page by default."""
    first = create_product(name="Old", sku="OLD")
    last = create_product(name="New", sku="NEW")

    data = client.get("/api/v1/products/").json()

    assert data["pagination"]["page"] == 1
    assert data["pagination"]["limit"] == 10
    assert [p["uid"] for p in data["items"]] == [last["uid"], first["uid"]]


def test_list_products_empty(client):
    data = client.get("/api/v1/products/").json()

    assert data["items"] == []
    assert data["pagination"]["total"] == 0
    assert data["pagination"]["pages"] == 0


def test_list_products_limit_zero_returns_all(client, create_product):
    for i in range(12):
        create_product(sku=f"S-{i}")

    data = client.get("/api/v1/products/?limit=0&page=3").json()

    assert len(data["items"]) == 12
    assert data["pagination"]["limit"] == 0
    assert data["pagination"]["pages"] == 1


def test_list_products_page_beyond_end(client, create_product):
    create_product()

    data = client.get("/api/v1/products/?page=5&limit=10").json()

    assert data["items"] == []
    assert data["pagination"]["total"] == 1


def test_list_products_non_numeric_paging_falls_back(client, create_product):
    create_product()

    data = client.get("/api/v1/products/?page=abc&limit=xyz").json()

    assert data["pagination"]["page"] == 1
    assert data["pagination"]["limit"] == 10


def test_list_products_rejects_page_zero(client):
    response = client.get("/api/v1/products/?page=0")

    assert response.status_code == 400


@pytest.mark.parametrize("query", ["page=100000000000000000000&limit=10", "page=1000001", "limit=1001"])
def test_list_products_rejects_out_of_range_paging(client, query):
    response = client.get(f"/api/v1/products/?{query}")

    assert response.status_code == 400


def test_list_products_accepts_largest_page_size(client, create_product):
    create_product()

    data = client.get("/api/v1/products/?limit=1000&page=1000000").json()

    assert data["items"] == []
    assert data["pagination"]["limit"] == 1000


def test_search_products_case_insensitive(client, create_product):
    """Search matches substrings of name regardless of case."""
    create_product(name="Widget", sku="W-1")
    create_product(name="Gadget", sku="G-1")

    for term in ("widget", "WID", "dGe"):
        data = client.get("/api/v1/products/", params={"search": term}).json()
        names = [item["name"] for item in data["items"]]
        if term == "dGe":
            assert sorted(names) == ["Gadget", "Widget"]
        else:
            assert names == ["Widget"]


def test_search_products_description_and_sku(client, create_product):
    create_product(name="Apple iPhone", description="Smartphone", sku="IPH-15")
    create_product(name="Samsung Galaxy", description="Android phone", sku="SGS-24")
    create_product(name="Apple MacBook", description="Laptop", sku="MBP-14")

    by_description = client.get("/api/v1/products/?search=PHONE").json()
    by_sku = client.get("/api/v1/products/?search=mbp").json()

    assert by_description["pagination"]["total"] == 2
    assert [p["name"] for p in by_sku["items"]] == ["Apple MacBook"]


def test_search_treats_wildcards_literally(client, create_product):
    create_product(name="100% cotton", sku="C-1")
    create_product(name="Polyester", sku="P-1")

    data = client.get("/api/v1/products/", params={"search": "%"}).json()

    assert [p["name"] for p in data["items"]] == ["100% cotton"]


def test_price_filter_is_inclusive(client, create_product):
    for price in (10, 20, 30, 40):
        create_product(price=price, sku=f"P-{price}")

    data = client.get("/api/v1/products/?minPrice=20&maxPrice=30&sortBy=price&sortOrder=asc").json()

    assert [p["price"] for p in data["items"]] == [20, 30]
    assert data["pagination"]["total"] == 2


def test_price_filter_open_ended(client, create_product):
    for price in (0, 10, 20):
        create_product(price=price, sku=f"P-{price}")

    below = client.get("/api/v1/products/?maxPrice=10").json()
    above = client.get("/api/v1/products/?minPrice=0").json()

    assert below["pagination"]["total"] == 2
    assert above["pagination"]["total"] == 3


def test_non_numeric_price_bound_is_ignored(client, create_product):
    create_product(price=5, sku="A")
    create_product(price=500, sku="B")

    response = client.get("/api/v1/products/?minPrice=abc&maxPrice=100")

    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1


def test_search_and_price_combined(client, create_product):
    create_product(name="Cheap widget", price=5, sku="W-1")
    create_product(name="Fancy widget", price=500, sku="W-2")
    create_product(name="Cheap gadget", price=5, sku="G-1")

    data = client.get("/api/v1/products/?search=widget&maxPrice=10").json()

    assert [p["name"] for p in data["items"]] == ["Cheap widget"]


def test_sort_by_name_ascending(client, create_product):
    for name in ("Banana", "apple", "Cherry"):
        create_product(name=name, sku=name)

    data = client.get("/api/v1/products/?sortBy=name&sortOrder=asc").json()

    assert [p["name"] for p in data["items"]] == sorted(["Banana", "apple", "Cherry"])


def test_sort_order_is_case_insensitive(client, create_product):
    create_product(price=1, sku="A")
    create_product(price=2, sku="B")

    data = client.get("/api/v1/products/?sortBy=price&sortOrder=DESC").json()

    assert [p["price"] for p in data["items"]] == [2, 1]


def test_invalid_sort_order(client):
    response = client.get("/api/v1/products/?sortOrder=sideways")

    assert response.status_code == 400


def test_invalid_sort_field(client):
    response = client.get("/api/v1/products/?sortBy=password")

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "sortBy"


def test_update_product(client, create_product):
    """Test updating a product."""
    created = create_product(name="Original Name", price=50.00, sku="ORIG", description="Keep me")

    response = client.patch(
        f"/api/v1/products/{created['uid']}",
        json={"name": "Updated Name", "price": 75.00}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Updated Name"
    assert data["price"] == 75.00
    assert data["sku"] == "ORIG"
    assert data["description"] == "Keep me"
    assert data["uid"] == created["uid"]
    assert data["createdAt"] == created["createdAt"]
    assert datetime.fromisoformat(data["updatedAt"]) >= datetime.fromisoformat(created["updatedAt"])

    fetched = client.get(f"/api/v1/products/{created['uid']}").json()
    assert fetched == data


def test_update_accepts_snake_case(client, create_product):
    created = create_product()

    response = client.patch(
        f"/api/v1/products/{created['uid']}",
        json={"discount_price": 80}
    )

    assert response.status_code == 200
    assert response.json()["discountPrice"] == 80


def test_update_can_clear_optional_fields(client, create_product):
    created = create_product(description="Soon gone", discountPrice=9.5)

    data = client.patch(
        f"/api/v1/products/{created['uid']}",
        json={"description": None, "discountPrice": None}
    ).json()

    assert data["description"] is None
    assert data["discountPrice"] is None


def test_update_rejects_null_required_field(client, create_product):
    created = create_product()

    response = client.patch(f"/api/v1/products/{created['uid']}", json={"name": None})

    assert response.status_code == 400


@pytest.mark.parametrize("payload", [{"price": "NaN"}, {"price": "Infinity"}, {"discountPrice": "NaN"}])
def test_update_rejects_non_finite_price(client, create_product, payload):
    created = create_product(price=10.0)

    response = client.patch(f"/api/v1/products/{created['uid']}", json=payload)

    assert response.status_code == 400
    assert client.get(f"/api/v1/products/{created['uid']}").json()["price"] == 10.0


def test_update_rejects_image_fields(client, create_product):
    """Image fields only change through the image endpoints."""
    created = create_product()

    response = client.patch(
        f"/api/v1/products/{created['uid']}",
        json={"imageUrl": "http://evil.example.com/x.png"}
    )

    assert response.status_code == 400


def test_update_empty_patch_returns_product(client, create_product):
    created = create_product()

    response = client.patch(f"/api/v1/products/{created['uid']}", json={})

    assert response.status_code == 200
    assert response.json() == created


def test_update_product_not_found(client):
    response = client.patch("/api/v1/products/missing", json={"price": 1})

    assert response.status_code == 404


def test_delete_product(client, create_product):
    """Test deleting a product."""
    created = create_product(name="To Delete")

    response = client.delete(f"/api/v1/products/{created['uid']}")
    assert response.status_code == 200
    assert response.json()["uid"] == created["uid"]
    assert response.json()["name"] == "To Delete"

    # Verify it's deleted
    get_response = client.get(f"/api/v1/products/{created['uid']}")
    assert get_response.status_code == 404

    again = client.delete(f"/api/v1/products/{created['uid']}")
    assert again.status_code == 404


def test_product_lifecycle(client):
    """Create, read, patch, delete, then read again."""
    response = client.post(
        "/api/v1/products/",
        json={"name": "Phone", "price": 100, "sku": "PH-1"}
    )
    assert response.status_code == 201
    uid = response.json()["uid"]

    fetched = client.get(f"/api/v1/products/{uid}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Phone"
    assert fetched.json()["price"] == 100
    assert fetched.json()["sku"] == "PH-1"

    patched = client.patch(f"/api/v1/products/{uid}", json={"price": 150})
    assert patched.status_code == 200
    assert patched.json()["price"] == 150
    assert patched.json()["name"] == "Phone"

    assert client.delete(f"/api/v1/products/{uid}").status_code == 200
    assert client.get(f"/api/v1/products/{uid}").status_code == 404
