"""Field rule sets checked against ``data`` in create and update requests."""

from __future__ import annotations

from services.orders import ORDER_STATUSES, PAYMENT_STATUSES
from services.products import MAX_IMAGES, PRODUCT_GENDERS, PRODUCT_SIZES
from utils.validation import ValidationRules, rule

PRODUCT_RULES: ValidationRules = {
    "title": rule(required=True, min_length=3, max_length=100),
    "description": rule(required=True, min_length=10, max_length=2000),
    "price": rule(required=True, min=0.01, max=999999.99),
    "stock": rule(required=True, min=0, max=99999),
    "discount": rule(min=0, max=100),
    "sizes": rule(enum=PRODUCT_SIZES),
    "gender": rule(enum=PRODUCT_GENDERS),
    "images": rule(is_array=True, min_items=1, max_items=MAX_IMAGES),
}

CART_CREATE_RULES: ValidationRules = {
    "sessionId": rule(required=True, min_length=10, max_length=100),
    "items": rule(required=True, is_array=True, min_items=1),
}

CART_UPDATE_RULES: ValidationRules = {
    "items": rule(is_array=True, min_items=1),
}

CART_ITEM_RULES: ValidationRules = {
    "product": rule(required=True),
    "quantity": rule(required=True, min=1, max=99),
    "size": rule(required=True),
    "color": rule(required=True, min_length=2),
}

ORDER_CREATE_RULES: ValidationRules = {
    "orderNumber": rule(required=True, min_length=8, max_length=20),
    "totalAmount": rule(required=True, min=0.01, max=999999.99),
    "items": rule(required=True, is_array=True, min_items=1),
    "orderStatus": rule(enum=ORDER_STATUSES),
    "paymentStatus": rule(enum=PAYMENT_STATUSES),
}

ORDER_UPDATE_RULES: ValidationRules = {
    "totalAmount": rule(min=0.01, max=999999.99),
    "orderStatus": rule(enum=ORDER_STATUSES),
    "paymentStatus": rule(enum=PAYMENT_STATUSES),
}

ADDRESS_RULES: ValidationRules = {
    "street": rule(required=True, min_length=5, max_length=200),
    "city": rule(required=True, min_length=2, max_length=100),
    "postalCode": rule(required=True, min_length=5, max_length=10),
    "country": rule(required=True, min_length=2, max_length=50),
}

REVIEW_RULES: ValidationRules = {
    "rating": rule(required=True, min=1, max=5),
    "comment": rule(min_length=10, max_length=1000),
}

CATEGORY_RULES: ValidationRules = {
    "name": rule(required=True, min_length=2, max_length=100),
}
