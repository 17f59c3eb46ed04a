"""Map stored documents to response shapes."""

from typing import Any, Dict, List, Optional

from pricing import cart_total


_STATUS_LABELS = {
    "placed": "Processing",
    "confirmed": "Processing",
    "shipped": "Shipped",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
    "returned": "Returned",
}


def _str_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _distinct(values: List[Any]) -> List[Any]:
    seen = []
    for v in values:
        if v and v not in seen:
            seen.append(v)
    return seen


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if value is None or value == "":
        return []
    return [value]


def safe_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Public view of a user; never includes the hash or one-time secrets."""
    return {
        "id": _str_id(user.get("_id")),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role", "user"),
        "phone": user.get("phone"),
        "phoneVerified": bool(user.get("phone_verified")),
        "emailVerified": bool(user.get("email_verified")),
        "wishlist": [str(p) for p in user.get("wishlist") or []],
        "rewards": user.get("rewards") or {"points": 0, "tier": "Bronze"},
        "paymentMethods": [_payment_method(m) for m in user.get("payment_methods") or []],
        "createdAt": user.get("created_at"),
        "updatedAt": user.get("updated_at"),
    }


def _payment_method(method: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": method.get("type"),
        "label": method.get("label"),
        "maskedValue": method.get("masked_value"),
        "isDefault": bool(method.get("is_default")),
    }


def to_product_response(product: Optional[Dict[str, Any]], card_only: bool = False) -> Optional[Dict[str, Any]]:
    if not product:
        return None
    variants = [
        {"size": v.get("size"), "color": v.get("color"), "stock": v.get("stock", 0)}
        for v in product.get("variants") or []
        if isinstance(v, dict)
    ]
    sizes = _as_list(product.get("sizes")) or _distinct([v["size"] for v in variants])
    colors = _as_list(product.get("colors")) or _distinct([v["color"] for v in variants])
    images = _as_list(product.get("images"))
    stock = product.get("stock")
    stock = stock if isinstance(stock, (int, float)) and not isinstance(stock, bool) else 0
    original_price = product.get("original_price")
    if original_price is None:
        original_price = product.get("mrp") if product.get("mrp") is not None else product.get("price")
    is_limited = product.get("is_limited")
    is_limited = 0 < stock <= 5 if is_limited is None else bool(is_limited)

    base = {
        "id": _str_id(product.get("_id")),
        "name": product.get("name"),
        "description": product.get("description") or "",
        "categoryId": _str_id(product.get("category_id")),
        "collection": product.get("collection") or "",
        "price": product.get("price"),
        "originalPrice": original_price,
        "mrp": product.get("mrp"),
        "images": images,
        "image": images[0] if images else None,
        "stock": stock,
        "isNew": bool(product.get("is_new")),
        "isBestSeller": bool(product.get("is_best_seller")),
        "isLimited": is_limited,
        "rating": float(product.get("rating") or 0),
        "reviewCount": int(product.get("review_count") or 0),
        "sizes": sizes,
        "colors": colors,
        "variants": variants,
        "viewCount": int(product.get("view_count") or 0),
        "addedToCartCount": int(product.get("added_to_cart_count") or 0),
        "trendingScore": float(product.get("trending_score") or 0),
        "dropDate": product.get("drop_date"),
        "releaseDate": product.get("release_date"),
        "productSpecifications": product.get("product_specifications") or {},
        "createdAt": product.get("created_at"),
        "updatedAt": product.get("updated_at"),
    }
    if card_only:
        keys = ("id", "name", "price", "originalPrice", "images", "image", "categoryId", "collection",
                "stock", "sizes", "variants", "isNew", "isBestSeller", "isLimited", "rating", "reviewCount")
        return {k: base[k] for k in keys}
    return base


def to_category_response(category: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _str_id(category.get("_id")),
        "name": category.get("name"),
        "slug": category.get("slug"),
        "isActive": bool(category.get("is_active", True)),
        "createdAt": category.get("created_at"),
    }


def _line(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "productId": _str_id(item.get("product_id")),
        "quantity": item.get("quantity"),
        "price": item.get("price"),
        "size": item.get("size"),
        "color": item.get("color"),
    }


def to_cart_response(cart: Dict[str, Any]) -> Dict[str, Any]:
    items = cart.get("items") or []
    return {
        "id": _str_id(cart.get("_id")),
        "userId": _str_id(cart.get("user_id")),
        "items": [_line(it) for it in items],
        "totalAmount": cart_total(items),
        "updatedAt": cart.get("updated_at"),
    }


def to_order_response(order: Dict[str, Any], user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    data = {
        "id": _str_id(order.get("_id")),
        "userId": _str_id(order.get("user_id")),
        "items": [
            {**_line(it), "name": it.get("name"), "image": it.get("image")}
            for it in order.get("items") or []
        ],
        "shippingAddress": order.get("shipping_address"),
        "paymentMethod": order.get("payment_method"),
        "paymentStatus": order.get("payment_status"),
        "orderStatus": order.get("order_status"),
        "totalAmount": order.get("total_amount"),
        "paymentId": order.get("payment_id"),
        "invoiceUrl": order.get("invoice_url"),
        "trackingUrl": order.get("tracking_url"),
        "returnEligible": bool(order.get("return_eligible")),
        "createdAt": order.get("created_at"),
        "updatedAt": order.get("updated_at"),
    }
    if user is not None:
        data["user"] = {"id": _str_id(user.get("_id")), "name": user.get("name"), "email": user.get("email")}
    return data


def normalize_order_status(status: Optional[str]) -> str:
    if not status:
        return "Processing"
    return _STATUS_LABELS.get(str(status).lower(), status)


def to_account_order(order: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _str_id(order.get("_id")),
        "date": order.get("created_at"),
        "status": normalize_order_status(order.get("order_status")),
        "total": order.get("total_amount"),
        "items": [
            {
                "productId": _str_id(it.get("product_id")),
                "name": it.get("name"),
                "qty": it.get("quantity"),
                "size": it.get("size") or None,
                "color": it.get("color") or None,
                "price": it.get("price"),
                "image": it.get("image") or None,
            }
            for it in order.get("items") or []
        ],
        "shippingAddress": order.get("shipping_address") or None,
        "paymentMethod": order.get("payment_method") or None,
        "invoiceUrl": order.get("invoice_url") or None,
        "trackingUrl": order.get("tracking_url") or None,
        "returnEligible": bool(order.get("return_eligible")),
    }


def to_address_response(address: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _str_id(address.get("_id")),
        "name": address.get("name") or "",
        "phone": address.get("phone") or "",
        "line1": address.get("line1"),
        "line2": address.get("line2") or "",
        "city": address.get("city"),
        "state": address.get("state") or "",
        "pincode": address.get("postal_code") or "",
        "country": address.get("country"),
        "landmark": address.get("landmark") or "",
        "instructions": address.get("instructions") or "",
        "isDefault": bool(address.get("is_default")),
    }


def to_return_response(request: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _str_id(request.get("_id")),
        "orderId": _str_id(request.get("order_id")),
        "productId": _str_id(request.get("product_id")),
        "reason": request.get("reason"),
        "comment": request.get("comment") or None,
        "status": request.get("status"),
        "createdAt": request.get("created_at"),
        "updatedAt": request.get("updated_at"),
    }


def to_review_response(review: Dict[str, Any], user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    data = {
        "id": _str_id(review.get("_id")),
        "productId": _str_id(review.get("product_id")),
        "userId": _str_id(review.get("user_id")),
        "rating": review.get("rating"),
        "title": review.get("title"),
        "body": review.get("body"),
        "createdAt": review.get("created_at"),
    }
    if user is not None:
        data["user"] = {"id": _str_id(user.get("_id")), "name": user.get("name"), "email": user.get("email")}
    return data
