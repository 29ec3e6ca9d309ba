"""Validation rules for product drafts.

Each rule is a plain validator that raises ``ValidationError`` the way
``django.core.validators`` do, so the same functions back both the
``ProductForm`` fields and ``validate_draft`` for framework-free callers.
"""
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_date

PRODUCT_NAME_MIN_LENGTH = 2

LOCATION_LOCAL = "local"
LOCATION_WAREHOUSE = "warehouse"
LOCATION_CHOICES = [
    (LOCATION_LOCAL, "Local Shop"),
    (LOCATION_WAREHOUSE, "Warehouse"),
]
DEFAULT_LOCATION = LOCATION_LOCAL
DEFAULT_REORDER_LEVEL = "5"

PRODUCT_NAME_TOO_SHORT = "Product name must be at least 2 characters"
CATEGORY_REQUIRED = "Category is required"
CATEGORY_UNKNOWN = "Select a valid category"
PRICE_REQUIRED = "Price is required"
UNITS_REQUIRED = "Units is required"
EXPIRY_INVALID = "Enter a valid date"
EXPIRY_IN_PAST = "Expiry date cannot be in the past"
LOCATION_INVALID = "Select either local or warehouse"


def validate_product_name(value):
    if len(value or "") < PRODUCT_NAME_MIN_LENGTH:
        raise ValidationError(PRODUCT_NAME_TOO_SHORT, code="min_length")


def validate_category(value, categories: Optional[Iterable[str]] = None):
    if not value:
        raise ValidationError(CATEGORY_REQUIRED, code="required")
    if categories is not None and value not in categories:
        raise ValidationError(CATEGORY_UNKNOWN, code="invalid_choice")


def validate_price(value):
    if not value:
        raise ValidationError(PRICE_REQUIRED, code="required")


def validate_units(value):
    if not value:
        raise ValidationError(UNITS_REQUIRED, code="required")


def parse_expiry_date(value):
    """Parse an ISO calendar date, returning None for an empty value."""
    if not value:
        return None
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(EXPIRY_INVALID, code="invalid")
    return parsed


def calendar_day(value):
    """Reduce a datetime to its calendar day; aware values use the local zone."""
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            return timezone.localdate(value)
        return value.date()
    return value


def is_selectable_date(value, today=None):
    """True unless the date falls on a day before today."""
    today = today or timezone.localdate()
    return calendar_day(value) >= calendar_day(today)


def validate_expiry_date(value, today=None):
    parsed = parse_expiry_date(value)
    if parsed is not None and not is_selectable_date(parsed, today):
        raise ValidationError(EXPIRY_IN_PAST, code="past_date")


def validate_location(value):
    if value not in (LOCATION_LOCAL, LOCATION_WAREHOUSE):
        raise ValidationError(LOCATION_INVALID, code="invalid_choice")


def validate_draft(
    values: Mapping[str, str],
    categories: Optional[Iterable[str]] = None,
    today=None,
) -> Dict[str, str]:
    """Check a whole draft and map each failing field to its message.

    An empty mapping means the draft can be submitted. ``reorder_level`` is
    optional and carries no rule.
    """
    if categories is not None:
        categories = list(categories)

    checks = [
        ("product_name", validate_product_name),
        ("category", lambda value: validate_category(value, categories)),
        ("expiry_date", lambda value: validate_expiry_date(value, today)),
        ("price", validate_price),
        ("units", validate_units),
        ("location", lambda value: validate_location(value or DEFAULT_LOCATION)),
    ]

    errors: Dict[str, str] = {}
    for field, check in checks:
        try:
            check(values.get(field, ""))
        except ValidationError as exc:
            errors[field] = exc.messages[0]
    return errors
