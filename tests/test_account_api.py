from bson import ObjectId

from conftest import add_product

ADDRESS = {"line1": "1 Main St", "city": "Pune", "country": "IN"}


def test_address_crud_and_default(client, alice):
    first = client.post("/api/addresses", json={**ADDRESS, "isDefault": True}, headers=alice).json()["address"]
    second = client.post(
        "/api/addresses", json={**ADDRESS, "line1": "2 Side St", "postalCode": "411002"}, headers=alice
    ).json()["address"]
    assert first["isDefault"] is True
    assert second["pincode"] == "411002"

    res = client.put(f"/api/addresses/{second['id']}", json={"isDefault": True, "city": "Mumbai"}, headers=alice)
    assert res.json()["address"]["city"] == "Mumbai"

    addresses = client.get("/api/addresses", headers=alice).json()["addresses"]
    assert [a["isDefault"] for a in addresses] == [True, False]
    assert addresses[0]["id"] == second["id"]

    assert client.delete(f"/api/addresses/{first['id']}", headers=alice).status_code == 200
    assert len(client.get("/api/addresses", headers=alice).json()["addresses"]) == 1


def test_address_requires_fields(client, alice):
    res = client.post("/api/addresses", json={"line1": "x", "city": "y"}, headers=alice)
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "country"


def test_address_ownership(client, alice, bob, admin):
    address = client.post("/api/addresses", json=ADDRESS, headers=alice).json()["address"]
    assert client.put(f"/api/addresses/{address['id']}", json={"city": "X"}, headers=bob).status_code == 403
    assert client.delete(f"/api/addresses/{address['id']}", headers=bob).status_code == 403
    assert client.put(f"/api/addresses/{address['id']}", json={"city": "X"}, headers=admin).status_code == 200
    assert client.delete(f"/api/addresses/{ObjectId()}", headers=alice).status_code == 404


def test_wishlist(client, db, alice):
    p1 = add_product(db, "Tee")
    p2 = add_product(db, "Cap")
    client.post("/api/wishlist", json={"productId": p2}, headers=alice)
    client.post("/api/wishlist", json={"productId": p1}, headers=alice)
    client.post("/api/wishlist", json={"productId": p2}, headers=alice)
    assert [p["name"] for p in client.get("/api/wishlist", headers=alice).json()["wishlist"]] == ["Cap", "Tee"]

    db["product"].delete_one({"_id": ObjectId(p2)})
    assert [p["name"] for p in client.get("/api/wishlist", headers=alice).json()["wishlist"]] == ["Tee"]

    client.delete(f"/api/wishlist/{p1}", headers=alice)
    assert client.get("/api/wishlist", headers=alice).json()["wishlist"] == []
    assert client.post("/api/wishlist", json={"productId": str(ObjectId())}, headers=alice).status_code == 404


def test_returns(client, db, alice, bob, admin):
    p1 = add_product(db)
    order_id = client.post(
        "/api/orders", json={"items": [{"productId": p1, "quantity": 1}], "paymentMethod": "COD"}, headers=alice
    ).json()["order"]["id"]

    res = client.post("/api/returns", json={"orderId": order_id, "reason": "Too small"}, headers=bob)
    assert res.status_code == 403
    assert client.post("/api/returns", json={"orderId": order_id}, headers=alice).status_code == 400
    assert client.post("/api/returns", json={"orderId": "x", "reason": "r"}, headers=alice).status_code == 400

    res = client.post(
        "/api/returns", json={"orderId": order_id, "productId": p1, "reason": "Too small"}, headers=alice
    )
    assert res.status_code == 201
    request = res.json()["returnRequest"]
    assert request["status"] == "Requested"

    assert [r["id"] for r in client.get("/api/returns/my", headers=alice).json()["returns"]] == [request["id"]]
    assert client.get(f"/api/returns/{request['id']}", headers=bob).status_code == 403

    assert client.put(f"/api/returns/{request['id']}/status", json={"status": "Approved"}, headers=alice).status_code == 403
    res = client.put(f"/api/returns/{request['id']}/status", json={"status": "Approved"}, headers=admin)
    assert res.json()["returnRequest"]["status"] == "Approved"


def test_account_overview(client, db, alice):
    p1 = add_product(db)
    client.post("/api/addresses", json=ADDRESS, headers=alice)
    client.post(
        "/api/orders", json={"items": [{"productId": p1, "quantity": 2}], "paymentMethod": "COD"}, headers=alice
    )
    account = client.get("/api/account", headers=alice).json()
    assert account["profile"]["email"] == "alice@shopmail.com"
    assert "passwordHash" not in account["profile"] and "password_hash" not in account["profile"]
    assert account["orders"][0]["status"] == "Processing"
    assert account["orders"][0]["total"] == 20.0
    assert account["orders"][0]["items"][0]["qty"] == 2
    assert len(account["addresses"]) == 1
    assert account["rewards"] == {"points": 0, "tier": "Bronze"}
    assert account["returns"] == []
