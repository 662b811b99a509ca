from routers.store import format_price


def _create_product(client, headers, **overrides):
    payload = {
        "title": "Sigaram T-Shirt",
        "variants": [
            {"title": "M", "price_in_cents": 49900, "sale_price_in_cents": 39900, "manage_inventory": True, "inventory_quantity": 3},
            {"title": "Sticker", "price_in_cents": 5000},
        ],
    }
    payload.update(overrides)
    res = client.post("/api/admin/store/products", json=payload, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def test_format_price(monkeypatch):
    monkeypatch.delenv("STORE_CURRENCY_SYMBOL", raising=False)
    assert format_price(123456) == "₹1,234.56"
    monkeypatch.setenv("STORE_CURRENCY_SYMBOL", "$")
    assert format_price(500) == "$5.00"


def test_catalogue_and_checkout(client, admin_headers):
    product = _create_product(client, admin_headers)
    _create_product(client, admin_headers, title="Hidden", is_published=False)
    shirt, sticker = product["variants"]
    assert shirt["sale_price_formatted"] == "₹399.00"
    assert shirt["in_stock"] is True
    assert sticker["inventory_quantity"] is None

    listed = client.get("/api/store/products").json()
    assert [row["title"] for row in listed] == ["Sigaram T-Shirt"]

    res = client.post("/api/store/checkout", json={
        "email": "fan@example.com",
        "items": [
            {"variant_id": shirt["id"], "quantity": 1},
            {"variant_id": shirt["id"], "quantity": 1},
            {"variant_id": sticker["id"], "quantity": 3},
        ],
    })
    assert res.status_code == 200
    order = res.json()
    assert order["status"] == "pending"
    assert order["total_in_cents"] == 2 * 39900 + 3 * 5000
    assert order["total_formatted"] == "₹948.00"

    detail = client.get(f"/api/store/products/{product['id']}").json()
    assert detail["variants"][0]["inventory_quantity"] == 1

    res = client.post("/api/store/checkout", json={"items": [{"variant_id": shirt["id"], "quantity": 2}]})
    assert res.status_code == 409

    res = client.post("/api/store/checkout", json={"items": [{"variant_id": 9999, "quantity": 1}]})
    assert res.status_code == 404


def test_cancel_restores_stock_and_complete(client, admin_headers):
    product = _create_product(client, admin_headers)
    shirt = product["variants"][0]
    first = client.post("/api/store/checkout", json={"items": [{"variant_id": shirt["id"], "quantity": 2}]}).json()
    second = client.post("/api/store/checkout", json={"items": [{"variant_id": shirt["id"], "quantity": 1}]}).json()

    assert client.post(f"/api/admin/store/orders/{first['id']}/cancel").status_code in (401, 403)
    cancelled = client.post(f"/api/admin/store/orders/{first['id']}/cancel", headers=admin_headers).json()
    assert cancelled["status"] == "cancelled"
    detail = client.get(f"/api/store/products/{product['id']}").json()
    assert detail["variants"][0]["inventory_quantity"] == 2

    paid = client.post(f"/api/admin/store/orders/{second['id']}/complete", headers=admin_headers).json()
    assert paid["status"] == "paid"
    assert client.post(f"/api/admin/store/orders/{second['id']}/cancel", headers=admin_headers).status_code == 409

    orders = client.get("/api/admin/store/orders", headers=admin_headers).json()
    assert [row["id"] for row in orders] == [second["id"], first["id"]]


def test_product_admin(client, admin_headers):
    product = _create_product(client, admin_headers)
    res = client.put(f"/api/admin/store/products/{product['id']}", json={"subtitle": "Limited"}, headers=admin_headers)
    assert res.json()["subtitle"] == "Limited"

    res = client.post(f"/api/admin/store/products/{product['id']}/variants", json={"title": "L", "price_in_cents": 49900}, headers=admin_headers)
    assert [variant["title"] for variant in res.json()["variants"]] == ["M", "Sticker", "L"]
    new_variant = res.json()["variants"][-1]

    res = client.put(f"/api/admin/store/variants/{new_variant['id']}", json={"sale_price_in_cents": 100}, headers=admin_headers)
    assert res.json()["sale_price_formatted"] == "₹1.00"
    assert client.delete(f"/api/admin/store/variants/{new_variant['id']}", headers=admin_headers).status_code == 200

    sticker = product["variants"][1]
    client.post("/api/store/checkout", json={"items": [{"variant_id": sticker["id"], "quantity": 1}]})
    assert client.delete(f"/api/admin/store/variants/{sticker['id']}", headers=admin_headers).status_code == 409

    res = client.delete(f"/api/admin/store/products/{product['id']}", headers=admin_headers)
    assert "unpublished" in res.json()["message"]
    assert client.get(f"/api/store/products/{product['id']}").status_code == 404

    empty = _create_product(client, admin_headers, title="Poster", variants=[])
    res = client.delete(f"/api/admin/store/products/{empty['id']}", headers=admin_headers)
    assert res.json()["message"] == "Product deleted"
