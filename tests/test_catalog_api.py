from bson import ObjectId

from conftest import add_product


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "Ecommerce API"}
    health = client.get("/test").json()
    assert health["database"] == "Connected"
    assert health["database_name"] == "storefront_test"


def test_product_write_requires_admin(client, alice, admin):
    body = {"name": "Hoodie", "price": 40, "stock": 3}
    assert client.post("/api/products", json=body).status_code == 401
    assert client.post("/api/products", json=body, headers=alice).status_code == 403

    res = client.post("/api/products", json=body, headers=admin)
    assert res.status_code == 201
    product = res.json()["product"]
    assert product["name"] == "Hoodie"
    assert product["originalPrice"] == 40
    assert product["isLimited"] is True


def test_product_create_validation(client, admin):
    res = client.post("/api/products", json={"name": "Hoodie", "price": -1}, headers=admin)
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "price"
    res = client.post("/api/products", json={"price": 5}, headers=admin)
    assert res.status_code == 400


def test_product_sizes_fall_back_to_variants(client, admin):
    body = {
        "name": "Tee",
        "price": 12,
        "variants": [
            {"size": "S", "color": "red", "stock": 2},
            {"size": "M", "color": "red", "stock": 0},
        ],
    }
    product = client.post("/api/products", json=body, headers=admin).json()["product"]
    assert product["sizes"] == ["S", "M"]
    assert product["colors"] == ["red"]


def test_list_products_filters_and_sorts(client, db):
    cat = ObjectId()
    add_product(db, "Tee", 10.0, category_id=cat)
    add_product(db, "Hoodie", 40.0, category_id=cat)
    add_product(db, "Cap", 5.0, stock=0)

    res = client.get("/api/products", params={"sort": "price_asc"}).json()
    assert [p["name"] for p in res["products"]] == ["Cap", "Tee", "Hoodie"]
    assert res["total"] == 3

    res = client.get("/api/products", params={"category": str(cat), "maxPrice": 20}).json()
    assert [p["name"] for p in res["products"]] == ["Tee"]

    res = client.get("/api/products", params={"inStock": "false"}).json()
    assert [p["name"] for p in res["products"]] == ["Cap"]

    res = client.get("/api/products", params={"q": "hood"}).json()
    assert [p["name"] for p in res["products"]] == ["Hoodie"]
    assert "viewCount" not in res["products"][0]

    res = client.get("/api/products", params={"sort": "price_desc", "limit": 1, "page": 2}).json()
    assert [p["name"] for p in res["products"]] == ["Tee"]

    assert client.get("/api/products", params={"sort": "cheapest"}).status_code == 400


def test_get_product_counts_views(client, db):
    p1 = add_product(db)
    client.get(f"/api/products/{p1}")
    product = client.get(f"/api/products/{p1}").json()["product"]
    assert product["viewCount"] == 1
    assert db["product"].find_one({"_id": ObjectId(p1)})["view_count"] == 2
    assert client.get(f"/api/products/{ObjectId()}").status_code == 404
    assert client.get("/api/products/zzz").status_code == 400


def test_update_and_delete_product(client, db, admin):
    p1 = add_product(db, "Tee", 10.0)
    res = client.put(f"/api/products/{p1}", json={"price": 11.5, "isNew": True}, headers=admin)
    product = res.json()["product"]
    assert (product["price"], product["isNew"]) == (11.5, True)
    assert client.put(f"/api/products/{p1}", json={}, headers=admin).status_code == 400
    assert client.put(f"/api/products/{ObjectId()}", json={"price": 1}, headers=admin).status_code == 404

    assert client.delete(f"/api/products/{p1}", headers=admin).status_code == 200
    assert client.delete(f"/api/products/{p1}", headers=admin).status_code == 404


def test_categories(client, alice, admin):
    res = client.post("/api/categories", json={"name": "Summer Tees"}, headers=admin)
    assert res.status_code == 201
    category = res.json()["category"]
    assert category["slug"] == "summer-tees"

    assert client.post("/api/categories", json={"name": "x", "slug": "Summer Tees"}, headers=admin).status_code == 409
    assert client.post("/api/categories", json={"name": "Hats"}, headers=alice).status_code == 403

    hats = client.post("/api/categories", json={"name": "Hats"}, headers=admin).json()["category"]
    res = client.put(f"/api/categories/{hats['id']}", json={"slug": "summer-tees"}, headers=admin)
    assert res.status_code == 409
    res = client.put(f"/api/categories/{hats['id']}", json={"isActive": False}, headers=admin)
    assert res.json()["category"]["isActive"] is False

    names = [c["name"] for c in client.get("/api/categories", headers=alice).json()["categories"]]
    assert names == ["Summer Tees"]

    assert client.delete(f"/api/categories/{hats['id']}", headers=admin).status_code == 200
    assert client.delete(f"/api/categories/{hats['id']}", headers=admin).status_code == 404


def test_category_update_rejects_empty_slug(client, admin):
    hats = client.post("/api/categories", json={"name": "Hats"}, headers=admin).json()["category"]
    res = client.put(f"/api/categories/{hats['id']}", json={"slug": "!!!"}, headers=admin)
    assert res.status_code == 400
    names = [c["slug"] for c in client.get("/api/categories", headers=admin).json()["categories"]]
    assert names == ["hats"]
