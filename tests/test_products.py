PRODUCT = {
    "name": "  Açılış Çelengi  ",
    "description": "Yapay çiçeklerden iki katlı açılış çelengi",
    "price": 750,
    "category": "Açılış Çelengi",
    "images": ["", "https://cdn.example.org/acilis.jpg", "  "],
}


def test_create_and_fetch_product_round_trip(admin_client):
    res = admin_client.post("/api/products", json=PRODUCT)
    assert res.status_code == 200
    created = res.json()
    assert created["name"] == "Açılış Çelengi"
    assert created["category"] == ["Açılış Çelengi"]
    assert created["images"] == ["https://cdn.example.org/acilis.jpg"]
    assert created["inStock"] is True

    fetched = admin_client.get(f"/api/products/{created['id']}")
    assert fetched.json()["category"] == ["Açılış Çelengi"]
    assert "s-maxage" in fetched.headers["Cache-Control"]


def test_category_list_order_is_preserved(admin_client):
    body = {**PRODUCT, "category": ["Cenaze Çelengi", "Ferforje"]}
    product_id = admin_client.post("/api/products", json=body).json()["id"]
    assert admin_client.get(f"/api/products/{product_id}").json()["category"] == ["Cenaze Çelengi", "Ferforje"]


def test_list_filters_by_category(admin_client):
    admin_client.post("/api/products", json=PRODUCT)
    admin_client.post("/api/products", json={**PRODUCT, "name": "Saksı", "category": "Saksı Bitkisi"})
    assert len(admin_client.get("/api/products").json()) == 2
    names = [p["name"] for p in admin_client.get("/api/products", params={"category": "Saksı Bitkisi"}).json()]
    assert names == ["Saksı"]


def test_invalid_products_are_rejected(admin_client):
    assert admin_client.post("/api/products", json={**PRODUCT, "price": 0}).status_code == 422
    assert admin_client.post("/api/products", json={**PRODUCT, "images": [""]}).status_code == 422
    assert admin_client.post("/api/products", json={**PRODUCT, "category": []}).status_code == 422
    assert admin_client.post("/api/products", json={**PRODUCT, "name": "   "}).status_code == 422


def test_update_and_delete_product(admin_client):
    product_id = admin_client.post("/api/products", json=PRODUCT).json()["id"]
    res = admin_client.put(f"/api/products/{product_id}", json={**PRODUCT, "price": 900, "inStock": False})
    assert res.json()["price"] == 900
    assert res.json()["inStock"] is False
    assert admin_client.delete(f"/api/products/{product_id}").status_code == 200
    assert admin_client.get(f"/api/products/{product_id}").status_code == 404
    assert admin_client.delete(f"/api/products/{product_id}").status_code == 404


def test_unknown_or_malformed_id_is_404(client):
    assert client.get("/api/products/123").status_code == 404
    assert client.get("/api/products/507f1f77bcf86cd799439011").status_code == 404


def test_product_mutations_require_admin(client):
    assert client.post("/api/products", json=PRODUCT).status_code == 401
