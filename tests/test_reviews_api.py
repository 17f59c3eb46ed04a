from bson import ObjectId

from conftest import add_product


def post_review(client, headers, product_id, rating, **extra):
    return client.post("/api/reviews", json={"productId": product_id, "rating": rating, **extra}, headers=headers)


def test_review_create_updates_product_aggregate(client, db, alice, bob):
    p1 = add_product(db)
    res = post_review(client, alice, p1, 5, title="Great")
    assert res.status_code == 201
    assert res.json()["product"] == {"id": p1, "rating": 5.0, "reviewCount": 1}

    post_review(client, bob, p1, 4)
    product = client.get(f"/api/products/{p1}").json()["product"]
    assert (product["rating"], product["reviewCount"]) == (4.5, 2)


def test_review_list_includes_author(client, db, alice):
    p1 = add_product(db)
    post_review(client, alice, p1, 3, body="ok")
    reviews = client.get(f"/api/reviews/{p1}").json()["reviews"]
    assert len(reviews) == 1
    assert reviews[0]["user"]["name"] == "Alice"
    assert reviews[0]["body"] == "ok"


def test_review_validation(client, db, alice):
    p1 = add_product(db)
    assert post_review(client, alice, p1, 6).status_code == 400
    assert post_review(client, alice, p1, 0).status_code == 400
    assert post_review(client, alice, str(ObjectId()), 4).status_code == 404
    assert post_review(client, alice, "bad", 4).status_code == 400
    assert client.post("/api/reviews", json={"productId": p1, "rating": 4}).status_code == 401


def test_deleting_last_review_resets_aggregate(client, db, alice):
    p1 = add_product(db)
    review_id = post_review(client, alice, p1, 2).json()["review"]["id"]
    res = client.delete(f"/api/reviews/{review_id}", headers=alice)
    assert res.status_code == 200
    product = db["product"].find_one({"_id": ObjectId(p1)})
    assert (product["rating"], product["review_count"]) == (0.0, 0)


def test_only_author_or_admin_deletes(client, db, alice, bob, admin):
    p1 = add_product(db)
    first = post_review(client, alice, p1, 5).json()["review"]["id"]
    post_review(client, bob, p1, 1)

    assert client.delete(f"/api/reviews/{first}", headers=bob).status_code == 403
    assert db["product"].find_one({"_id": ObjectId(p1)})["review_count"] == 2

    assert client.delete(f"/api/reviews/{first}", headers=admin).status_code == 200
    product = db["product"].find_one({"_id": ObjectId(p1)})
    assert (product["rating"], product["review_count"]) == (1.0, 1)
    assert client.delete(f"/api/reviews/{first}", headers=admin).status_code == 404
