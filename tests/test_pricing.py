import pytest
from bson import ObjectId

from conftest import add_product
from errors import ValidationError
from pricing import (
    LineRequest,
    cart_total,
    merge_line,
    normalize_variant,
    record_cart_add,
    reprice_items,
    resolve_lines,
)


def test_normalize_variant_treats_blank_as_unset():
    assert normalize_variant(None) is None
    assert normalize_variant("") is None
    assert normalize_variant("   ") is None
    assert normalize_variant(" M ") == "M"


def test_resolve_lines_uses_stored_price(db):
    p1 = add_product(db, "Tee", 10.0)
    p2 = add_product(db, "Cap", 7.5)
    batch = resolve_lines(db, [LineRequest(p1, 2), LineRequest(p2, 3, size=" ", color="red")])
    assert [line.price for line in batch.lines] == [10.0, 7.5]
    assert batch.lines[1].size is None
    assert batch.lines[1].color == "red"
    assert batch.total_amount == 42.5


def test_resolve_lines_counts_duplicate_ids_once(db):
    p1 = add_product(db, "Tee", 10.0)
    batch = resolve_lines(db, [LineRequest(p1, 1, size="S"), LineRequest(p1, 1, size="M")])
    assert batch.total_amount == 20.0


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
def test_resolve_lines_rejects_bad_quantity(db, quantity):
    p1 = add_product(db)
    with pytest.raises(ValidationError):
        resolve_lines(db, [LineRequest(p1, quantity)])


def test_resolve_lines_rejects_malformed_and_missing_ids(db):
    p1 = add_product(db)
    with pytest.raises(ValidationError):
        resolve_lines(db, [LineRequest("not-an-id", 1)])
    with pytest.raises(ValidationError) as exc:
        resolve_lines(db, [LineRequest(p1, 1), LineRequest(str(ObjectId()), 1)])
    assert exc.value.errors and exc.value.errors[0]["field"] == "productId"


def test_resolve_lines_rejects_empty_batch(db):
    with pytest.raises(ValidationError):
        resolve_lines(db, [])


def test_merge_line_matches_product_and_variant(db):
    p1 = add_product(db, "Tee", 10.0)
    line = resolve_lines(db, [LineRequest(p1, 2)]).lines[0]
    items = merge_line([], line)
    items = merge_line(items, resolve_lines(db, [LineRequest(p1, 3, size="")]).lines[0])
    assert len(items) == 1
    assert items[0]["quantity"] == 5

    items = merge_line(items, resolve_lines(db, [LineRequest(p1, 1, size="L")]).lines[0])
    assert len(items) == 2
    assert cart_total(items) == 60.0


def test_merge_line_refreshes_price(db):
    p1 = add_product(db, "Tee", 10.0)
    items = merge_line([], resolve_lines(db, [LineRequest(p1, 1)]).lines[0])
    db["product"].update_one({"_id": ObjectId(p1)}, {"$set": {"price": 12.0}})
    items = merge_line(items, resolve_lines(db, [LineRequest(p1, 1)]).lines[0])
    assert items == [{"product_id": ObjectId(p1), "quantity": 2, "price": 12.0, "size": None, "color": None}]


def test_reprice_items_drops_deleted_products(db):
    p1 = add_product(db, "Tee", 10.0)
    gone = ObjectId()
    items = [
        {"product_id": ObjectId(p1), "quantity": 1, "price": 1.0},
        {"product_id": gone, "quantity": 1, "price": 1.0},
    ]
    assert reprice_items(db, items) == [{"product_id": ObjectId(p1), "quantity": 1, "price": 10.0}]


def test_record_cart_add_bumps_counters(db):
    p1 = add_product(db)
    record_cart_add(db, ObjectId(p1), 2)
    product = db["product"].find_one({"_id": ObjectId(p1)})
    assert product["added_to_cart_count"] == 2
    assert product["trending_score"] == 6
