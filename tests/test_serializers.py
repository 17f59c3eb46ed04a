from bson import ObjectId

from config import Settings
from notifications import EmailSender, Notifier, SmsSender
from security import payment_signature, verify_payment_signature
from serializers import normalize_order_status, safe_user, to_account_order, to_product_response


def test_order_status_normalization():
    assert normalize_order_status(None) == "Processing"
    assert normalize_order_status("placed") == "Processing"
    assert normalize_order_status("confirmed") == "Processing"
    assert normalize_order_status("shipped") == "Shipped"
    assert normalize_order_status("Delivered") == "Delivered"
    assert normalize_order_status("returned") == "Returned"


def test_account_order_shape():
    order = {
        "_id": ObjectId(),
        "order_status": "delivered",
        "total_amount": 12.0,
        "items": [{"product_id": ObjectId(), "name": "Tee", "quantity": 2, "price": 6.0, "size": ""}],
        "payment_method": "COD",
        "return_eligible": True,
    }
    data = to_account_order(order)
    assert data["status"] == "Delivered"
    assert data["items"][0]["qty"] == 2
    assert data["items"][0]["size"] is None
    assert data["returnEligible"] is True
    assert data["trackingUrl"] is None


def test_product_card_is_subset_of_full():
    product = {"_id": ObjectId(), "name": "Tee", "price": 10, "mrp": 14, "images": "/a.jpg", "stock": 9}
    full = to_product_response(product)
    card = to_product_response(product, card_only=True)
    assert set(card) < set(full)
    assert card["originalPrice"] == 14
    assert card["images"] == ["/a.jpg"]
    assert card["isLimited"] is False
    assert to_product_response(None) is None


def test_safe_user_hides_secrets():
    user = {
        "_id": ObjectId(),
        "name": "A",
        "email": "a@shopmail.com",
        "password_hash": "x",
        "reset_password_token": "y",
        "email_verification_code": "123456",
        "payment_methods": [{"type": "card", "masked_value": "**** 4242", "is_default": True}],
    }
    data = safe_user(user)
    assert "x" not in data.values() and "y" not in data.values()
    assert data["paymentMethods"][0]["maskedValue"] == "**** 4242"


def test_payment_signature_is_constant_for_inputs():
    sig = payment_signature("s3cret", "order1", "pay1")
    assert sig == payment_signature("s3cret", "order1", "pay1")
    assert verify_payment_signature("s3cret", "order1", "pay1", sig)
    assert not verify_payment_signature("s3cret", "order1", "pay2", sig)
    assert not verify_payment_signature("s3cret", "order1", "pay1", "ünïcode")


def test_notifier_swallows_unconfigured_senders(caplog):
    settings = Settings()
    notifier = Notifier(EmailSender(settings), SmsSender(settings))
    notifier.email_quietly("a@shopmail.com", "Hi", "body")
    notifier.sms_quietly("+15550001111", "code")
    assert "Failed to send email" in caplog.text
    assert "Failed to send SMS" in caplog.text
