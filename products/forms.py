from django import forms
from django.utils import timezone

from .models import Category
from .validators import (
    CATEGORY_REQUIRED,
    CATEGORY_UNKNOWN,
    DEFAULT_LOCATION,
    DEFAULT_REORDER_LEVEL,
    LOCATION_CHOICES,
    LOCATION_INVALID,
    PRICE_REQUIRED,
    PRODUCT_NAME_TOO_SHORT,
    UNITS_REQUIRED,
    parse_expiry_date,
    validate_expiry_date,
    validate_product_name,
)


class ProductForm(forms.Form):
    """Renders a product draft and applies the draft rules to posted data."""

    product_name = forms.CharField(
        label="Product Name",
        strip=False,
        validators=[validate_product_name],
        error_messages={"required": PRODUCT_NAME_TOO_SHORT},
        widget=forms.TextInput(attrs={"placeholder": "Enter product name"}),
    )
    category = forms.ChoiceField(
        label="Category",
        choices=(),
        error_messages={"required": CATEGORY_REQUIRED, "invalid_choice": CATEGORY_UNKNOWN},
    )
    expiry_date = forms.CharField(
        label="Expiry Date (Optional)",
        required=False,
        strip=False,
        widget=forms.DateInput(attrs={"type": "date"}),
    )
    price = forms.CharField(
        label="Price (₹)",
        strip=False,
        error_messages={"required": PRICE_REQUIRED},
        widget=forms.NumberInput(attrs={"placeholder": "0.00", "step": "0.01"}),
    )
    units = forms.CharField(
        label="Units",
        strip=False,
        error_messages={"required": UNITS_REQUIRED},
        widget=forms.NumberInput(attrs={"placeholder": "0"}),
    )
    reorder_level = forms.CharField(
        label="Reorder Level",
        required=False,
        strip=False,
        initial=DEFAULT_REORDER_LEVEL,
        widget=forms.NumberInput(attrs={"placeholder": DEFAULT_REORDER_LEVEL}),
    )
    location = forms.ChoiceField(
        label="Stock Location",
        required=False,
        choices=LOCATION_CHOICES,
        initial=DEFAULT_LOCATION,
        error_messages={"invalid_choice": LOCATION_INVALID},
        widget=forms.RadioSelect,
    )

    def __init__(self, *args, categories=(), today=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.today = today or timezone.localdate()
        self.fields["category"].choices = [("", "Select a category")] + [
            (name, name) for name in dict.fromkeys(categories)
        ]
        # Days before today are not offered by the date picker.
        self.fields["expiry_date"].widget.attrs["min"] = self.today.isoformat()
        for field in self.fields.values():
            widget = field.widget
            if isinstance(widget, forms.RadioSelect):
                widget.attrs.setdefault("class", "form-check-input")
            elif isinstance(widget, forms.Select):
                widget.attrs.setdefault("class", "form-select")
            else:
                widget.attrs.setdefault("class", "form-control")

    def clean_expiry_date(self):
        value = self.cleaned_data.get("expiry_date", "")
        validate_expiry_date(value, today=self.today)
        return value

    def clean_location(self):
        return self.cleaned_data.get("location") or DEFAULT_LOCATION

    @property
    def selected_expiry_date(self):
        """Date shown on the picker button, read from the expiry_date value."""
        if self.is_bound:
            value = self.data.get(self.add_prefix("expiry_date"), "")
        else:
            value = self.initial.get("expiry_date", "")
        try:
            return parse_expiry_date(value)
        except forms.ValidationError:
            return None


class CategoryForm(forms.ModelForm):
    class Meta:
        model = Category
        fields = ("name",)
        widgets = {
            "name": forms.TextInput(attrs={"class": "form-control", "placeholder": "Category name"})
        }

    def clean_name(self):
        name = (self.cleaned_data.get("name") or "").strip()
        if name and Category.objects.filter(name__iexact=name).exists():
            raise forms.ValidationError(f"A category named '{name}' already exists.")
        return name
