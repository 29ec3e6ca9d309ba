"""Callback contract of the product form.

The controller owns a ``ProductDraft`` and decides which of the caller's
callbacks runs: ``on_submit`` with a normalized payload, ``on_cancel``, or
``on_open_add_category``. It never persists anything itself.
"""
import logging

from django.core.exceptions import ValidationError

from .draft import ProductDraft

logger = logging.getLogger(__name__)


class ProductFormClosed(Exception):
    """Raised when a submitted or cancelled form receives another action."""


class ProductFormController:
    EDITING = "editing"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"

    def __init__(self, categories, on_submit, on_cancel, on_open_add_category, draft=None, today=None):
        self.categories = tuple(dict.fromkeys(categories))
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.on_open_add_category = on_open_add_category
        self.draft = draft if draft is not None else ProductDraft()
        self.today = today
        self.state = self.EDITING

    @property
    def is_open(self):
        return self.state == self.EDITING

    def _ensure_open(self):
        if not self.is_open:
            raise ProductFormClosed(f"Product form is already {self.state}.")

    def change(self, field, value):
        self._ensure_open()
        self.draft.update(field, value)

    def select_expiry_date(self, value):
        self._ensure_open()
        self.draft.select_expiry_date(value, today=self.today)

    def submit(self):
        """Validate the draft and hand its payload to ``on_submit``.

        Raises ``ValidationError`` keyed by field when the draft is rejected;
        the form then stays open, as it does when ``on_submit`` raises.
        Returns whatever ``on_submit`` returns.
        """
        self._ensure_open()
        errors = self.draft.validate(categories=self.categories, today=self.today)
        if errors:
            logger.debug("Product draft rejected: %s", ", ".join(sorted(errors)))
            raise ValidationError(errors)

        payload = self.draft.to_payload()
        logger.info("Submitting product %r in %r", payload["product_name"], payload["category"])
        result = self.on_submit(payload)
        # A failing collaborator leaves the form open for another attempt.
        self.state = self.SUBMITTED
        return result

    def cancel(self):
        self._ensure_open()
        self.state = self.CANCELLED
        logger.info("Product form cancelled")
        return self.on_cancel()

    def open_add_category(self):
        self._ensure_open()
        logger.info("Add-category workflow requested from product form")
        return self.on_open_add_category()
