"""In-progress product record held while the form is open."""
from datetime import date

from django.core.exceptions import ValidationError

from .validators import (
    DEFAULT_LOCATION,
    DEFAULT_REORDER_LEVEL,
    EXPIRY_IN_PAST,
    calendar_day,
    is_selectable_date,
    parse_expiry_date,
    validate_draft,
)

DEFAULT_VALUES = {
    "product_name": "",
    "category": "",
    "expiry_date": "",
    "price": "",
    "units": "",
    "reorder_level": DEFAULT_REORDER_LEVEL,
    "location": DEFAULT_LOCATION,
}

FIELD_NAMES = tuple(DEFAULT_VALUES)


def _text(value):
    return "" if value is None else str(value)


def _expiry_date(value):
    # The ISO string is the only stored form of the date.
    if value is None:
        return ""
    if isinstance(value, date):
        return calendar_day(value).isoformat()
    return str(value)


def _location(value):
    return str(value) if value else DEFAULT_LOCATION


FIELD_HANDLERS = {
    "product_name": _text,
    "category": _text,
    "expiry_date": _expiry_date,
    "price": _text,
    "units": _text,
    "reorder_level": _text,
    "location": _location,
}


class ProductDraft:
    """Field values of a product that has not been submitted yet.

    Values are kept as strings, exactly as the user entered them. Every change
    goes through the handler registered for the field in ``FIELD_HANDLERS``.
    """

    def __init__(self, initial=None):
        self.values = dict(DEFAULT_VALUES)
        for field, value in (initial or {}).items():
            self.update(field, value)

    def update(self, field, value):
        try:
            handler = FIELD_HANDLERS[field]
        except KeyError:
            raise KeyError(f"Unknown product field: {field}") from None
        self.values[field] = handler(value)

    def select_expiry_date(self, value, today=None):
        """Pick an expiry date; ``None`` clears the current selection."""
        if value is None:
            self.clear_expiry_date()
            return
        value = calendar_day(value)
        if not is_selectable_date(value, today):
            raise ValidationError({"expiry_date": EXPIRY_IN_PAST})
        self.values["expiry_date"] = value.isoformat()

    def clear_expiry_date(self):
        self.values["expiry_date"] = ""

    @property
    def selected_expiry_date(self):
        """The picker's selection, derived from the stored ISO string."""
        try:
            return parse_expiry_date(self.values["expiry_date"])
        except ValidationError:
            return None

    def validate(self, categories=None, today=None):
        return validate_draft(self.values, categories=categories, today=today)

    def to_payload(self):
        payload = dict(self.values)
        selected = self.selected_expiry_date
        payload["expiry_date"] = selected.isoformat() if selected else ""
        return payload

    def as_dict(self):
        return dict(self.values)

    def __repr__(self):
        return f"<ProductDraft {self.values['product_name']!r}>"
