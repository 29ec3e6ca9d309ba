"""Persistence helpers the product form hands its payload to."""
import logging
from typing import Any, Dict, List

from django.core.exceptions import ValidationError
from django.db import transaction

from .models import Category, Product
from .validators import CATEGORY_UNKNOWN, DEFAULT_REORDER_LEVEL

logger = logging.getLogger(__name__)


def category_names() -> List[str]:
    """Ordered names offered by the category selector."""
    return list(Category.objects.order_by("name").values_list("name", flat=True))


def create_product(payload: Dict[str, Any]) -> Product:
    """Store a submitted product payload.

    The payload holds strings only. Blank expiry dates become NULL and a blank
    reorder level falls back to the default. Column conversion errors are
    raised as ``ValidationError`` keyed by payload field.
    """
    try:
        category = Category.objects.get(name=payload["category"])
    except Category.DoesNotExist:
        raise ValidationError({"category": CATEGORY_UNKNOWN}, code="invalid_choice") from None

    product = Product(
        product_name=payload["product_name"],
        category=category,
        expiry_date=payload.get("expiry_date") or None,
        price=payload["price"],
        units=payload["units"],
        reorder_level=payload.get("reorder_level") or DEFAULT_REORDER_LEVEL,
        location=payload["location"],
    )
    product.full_clean()

    with transaction.atomic():
        product.save()
    logger.info("Created product %s (pk=%s) at %s", product.product_name, product.pk, product.location)
    return product
