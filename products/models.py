from django.db import models
from django.utils import timezone

from .validators import DEFAULT_LOCATION, LOCATION_CHOICES


class Category(models.Model):
    name = models.CharField(max_length=60, unique=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'categories'

    def __str__(self):
        return self.name


class Product(models.Model):
    product_name = models.CharField(max_length=120)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    expiry_date = models.DateField(null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    units = models.PositiveIntegerField()
    reorder_level = models.PositiveIntegerField(default=5)
    location = models.CharField(max_length=20, choices=LOCATION_CHOICES, default=DEFAULT_LOCATION)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.product_name} ({self.category})"

    @property
    def needs_reorder(self):
        """True if units on hand are at or below the reorder level."""
        return self.units <= self.reorder_level

    @property
    def is_expired(self):
        """True if expiry_date is set and before today."""
        return bool(self.expiry_date and self.expiry_date < timezone.localdate())

    @property
    def is_near_expiry(self):
        """True if expiry_date is today or within the next 2 days."""
        return bool(self.expiry_date and 0 <= (self.expiry_date - timezone.localdate()).days <= 2)
