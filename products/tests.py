from datetime import date, datetime, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from .controller import ProductFormClosed, ProductFormController
from .draft import ProductDraft
from .forms import ProductForm
from .models import Category, Product
from .services import create_product
from .validators import is_selectable_date, validate_draft
from .views import SESSION_DRAFT_KEY

CATEGORIES = ["Dairy", "Bakery"]
TODAY = date(2025, 3, 1)


def milk_values(**overrides):
    values = {
        "product_name": "Milk",
        "category": "Dairy",
        "price": "40",
        "units": "10",
        "location": "local",
    }
    values.update(overrides)
    return values


class ValidateDraftTests(SimpleTestCase):
    def test_complete_draft_has_no_errors(self):
        draft = ProductDraft(milk_values())
        self.assertEqual(validate_draft(draft.values, CATEGORIES, today=TODAY), {})

    def test_short_product_name_is_rejected(self):
        for name in ("", "A"):
            errors = validate_draft(ProductDraft(milk_values(product_name=name)).values, CATEGORIES, today=TODAY)
            self.assertEqual(errors, {"product_name": "Product name must be at least 2 characters"})

    def test_two_character_name_passes(self):
        errors = validate_draft(ProductDraft(milk_values(product_name="Ox")).values, CATEGORIES, today=TODAY)
        self.assertNotIn("product_name", errors)

    def test_category_required_and_must_be_listed(self):
        errors = validate_draft(ProductDraft(milk_values(category="")).values, CATEGORIES, today=TODAY)
        self.assertEqual(errors, {"category": "Category is required"})
        errors = validate_draft(ProductDraft(milk_values(category="Toys")).values, CATEGORIES, today=TODAY)
        self.assertEqual(errors, {"category": "Select a valid category"})

    def test_price_and_units_required(self):
        errors = validate_draft(ProductDraft(milk_values(price="", units="")).values, CATEGORIES, today=TODAY)
        self.assertEqual(errors, {"price": "Price is required", "units": "Units is required"})

    def test_reorder_level_is_optional(self):
        errors = validate_draft(ProductDraft(milk_values(reorder_level="")).values, CATEGORIES, today=TODAY)
        self.assertEqual(errors, {})

    def test_expiry_date_rules(self):
        past = validate_draft(milk_values(expiry_date="2025-02-28"), CATEGORIES, today=TODAY)
        self.assertEqual(past, {"expiry_date": "Expiry date cannot be in the past"})
        garbled = validate_draft(milk_values(expiry_date="2025-02-30"), CATEGORIES, today=TODAY)
        self.assertEqual(garbled, {"expiry_date": "Enter a valid date"})
        self.assertEqual(validate_draft(milk_values(expiry_date="2025-03-01"), CATEGORIES, today=TODAY), {})

    def test_location_must_be_local_or_warehouse(self):
        errors = validate_draft(milk_values(location="backroom"), CATEGORIES, today=TODAY)
        self.assertEqual(errors, {"location": "Select either local or warehouse"})
        self.assertEqual(validate_draft(milk_values(location="warehouse"), CATEGORIES, today=TODAY), {})

    def test_selectable_dates_use_day_granularity(self):
        self.assertTrue(is_selectable_date(TODAY, today=TODAY))
        self.assertTrue(is_selectable_date(date(2025, 3, 10), today=TODAY))
        self.assertFalse(is_selectable_date(date(2025, 2, 28), today=TODAY))


class ProductDraftTests(SimpleTestCase):
    def test_defaults(self):
        draft = ProductDraft()
        self.assertEqual(draft.values["location"], "local")
        self.assertEqual(draft.values["reorder_level"], "5")
        self.assertEqual(draft.values["expiry_date"], "")
        self.assertIsNone(draft.selected_expiry_date)

    def test_update_uses_field_handlers(self):
        draft = ProductDraft()
        draft.update("price", Decimal("12.50"))
        draft.update("units", 3)
        draft.update("location", "")
        draft.update("expiry_date", date(2025, 3, 10))
        self.assertEqual(draft.values["price"], "12.50")
        self.assertEqual(draft.values["units"], "3")
        self.assertEqual(draft.values["location"], "local")
        self.assertEqual(draft.values["expiry_date"], "2025-03-10")

    def test_unknown_field_is_rejected(self):
        with self.assertRaises(KeyError):
            ProductDraft().update("colour", "red")

    def test_selecting_and_clearing_expiry_date(self):
        draft = ProductDraft()
        draft.select_expiry_date(date(2025, 3, 10), today=TODAY)
        self.assertEqual(draft.values["expiry_date"], "2025-03-10")
        self.assertEqual(draft.selected_expiry_date, date(2025, 3, 10))
        draft.select_expiry_date(None)
        self.assertEqual(draft.values["expiry_date"], "")
        self.assertIsNone(draft.selected_expiry_date)

    def test_past_date_cannot_be_selected(self):
        draft = ProductDraft()
        with self.assertRaises(ValidationError):
            draft.select_expiry_date(date(2025, 2, 28), today=TODAY)
        self.assertEqual(draft.values["expiry_date"], "")

    def test_datetime_selection_is_reduced_to_its_day(self):
        draft = ProductDraft()
        draft.select_expiry_date(datetime(2025, 3, 10, 18, 30), today=TODAY)
        self.assertEqual(draft.values["expiry_date"], "2025-03-10")
        draft.select_expiry_date(datetime(2025, 3, 1, 23, 59), today=TODAY)
        self.assertEqual(draft.values["expiry_date"], "2025-03-01")
        with self.assertRaises(ValidationError):
            draft.select_expiry_date(datetime(2025, 2, 28, 9, 0), today=TODAY)

        draft.update("expiry_date", datetime(2099, 1, 1, 10, 0))
        self.assertEqual(draft.values["expiry_date"], "2099-01-01")
        self.assertNotIn("expiry_date", draft.validate(CATEGORIES, today=TODAY))

    def test_payload_for_minimal_milk_draft(self):
        self.assertEqual(ProductDraft(milk_values()).to_payload(), {
            "product_name": "Milk",
            "category": "Dairy",
            "price": "40",
            "units": "10",
            "reorder_level": "5",
            "location": "local",
            "expiry_date": "",
        })


class ProductFormControllerTests(SimpleTestCase):
    def setUp(self):
        self.submitted = []
        self.cancelled = []
        self.category_requests = []
        self.controller = ProductFormController(
            CATEGORIES,
            on_submit=self.submitted.append,
            on_cancel=lambda: self.cancelled.append(True),
            on_open_add_category=lambda: self.category_requests.append(True),
            today=TODAY,
        )

    def fill(self, **overrides):
        for field, value in milk_values(**overrides).items():
            self.controller.change(field, value)

    def test_valid_submit_calls_on_submit_once(self):
        self.fill()
        self.controller.select_expiry_date(date(2025, 3, 10))
        self.controller.submit()
        self.assertEqual(len(self.submitted), 1)
        self.assertEqual(self.submitted[0]["expiry_date"], "2025-03-10")
        self.assertEqual(self.controller.state, ProductFormController.SUBMITTED)

    def test_cleared_date_submits_empty_expiry(self):
        self.fill()
        self.controller.select_expiry_date(date(2025, 3, 10))
        self.controller.select_expiry_date(None)
        self.controller.submit()
        self.assertEqual(self.submitted[0]["expiry_date"], "")

    def test_invalid_submit_keeps_form_open(self):
        self.fill(product_name="A")
        with self.assertRaises(ValidationError) as ctx:
            self.controller.submit()
        self.assertEqual(ctx.exception.message_dict, {"product_name": ["Product name must be at least 2 characters"]})
        self.assertEqual(self.submitted, [])
        self.assertTrue(self.controller.is_open)

        self.controller.change("product_name", "Apples")
        self.controller.submit()
        self.assertEqual(len(self.submitted), 1)

    def test_cancel_never_submits(self):
        self.fill()
        self.controller.cancel()
        self.assertEqual(self.cancelled, [True])
        self.assertEqual(self.submitted, [])
        self.assertEqual(self.controller.state, ProductFormController.CANCELLED)

    def test_add_category_leaves_draft_untouched(self):
        self.fill()
        before = self.controller.draft.as_dict()
        self.controller.open_add_category()
        self.assertEqual(self.category_requests, [True])
        self.assertEqual(self.controller.draft.as_dict(), before)
        self.assertTrue(self.controller.is_open)
        self.assertEqual(self.submitted, [])

    def test_closed_form_rejects_further_actions(self):
        self.fill()
        self.controller.submit()
        with self.assertRaises(ProductFormClosed):
            self.controller.submit()
        with self.assertRaises(ProductFormClosed):
            self.controller.cancel()
        self.assertEqual(len(self.submitted), 1)

    def test_failed_submit_callback_leaves_form_open(self):
        attempts = []

        def reject_first(payload):
            attempts.append(payload)
            if len(attempts) == 1:
                raise ValidationError({"units": "Enter a whole number."})
            return "saved"

        self.controller.on_submit = reject_first
        self.fill()
        with self.assertRaises(ValidationError):
            self.controller.submit()
        self.assertTrue(self.controller.is_open)

        self.assertEqual(self.controller.submit(), "saved")
        self.assertEqual(len(attempts), 2)
        self.assertEqual(self.controller.state, ProductFormController.SUBMITTED)


class ProductFormTests(SimpleTestCase):
    def test_unbound_form_defaults(self):
        form = ProductForm(categories=CATEGORIES, today=TODAY)
        self.assertEqual(form["location"].value(), "local")
        self.assertEqual(form["reorder_level"].value(), "5")
        self.assertEqual(form.fields["expiry_date"].widget.attrs["min"], "2025-03-01")
        self.assertEqual(
            list(form.fields["category"].choices),
            [("", "Select a category"), ("Dairy", "Dairy"), ("Bakery", "Bakery")],
        )

    def test_valid_data_is_accepted(self):
        form = ProductForm(data=milk_values(expiry_date="2025-03-10"), categories=CATEGORIES, today=TODAY)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["expiry_date"], "2025-03-10")
        self.assertEqual(form.cleaned_data["reorder_level"], "")
        self.assertEqual(form.selected_expiry_date, date(2025, 3, 10))

    def test_missing_location_resolves_to_local(self):
        data = milk_values()
        del data["location"]
        form = ProductForm(data=data, categories=CATEGORIES, today=TODAY)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["location"], "local")

    def test_errors_match_draft_rules(self):
        data = milk_values(product_name="A", category="", price="", expiry_date="2025-02-01")
        form = ProductForm(data=data, categories=CATEGORIES, today=TODAY)
        self.assertFalse(form.is_valid())
        expected = validate_draft(data, CATEGORIES, today=TODAY)
        self.assertEqual({field: errors[0] for field, errors in form.errors.items()}, expected)


class ProductServiceTests(TestCase):
    def setUp(self):
        self.dairy = Category.objects.create(name="Dairy")

    def test_create_product_converts_payload(self):
        payload = ProductDraft(milk_values(location="warehouse")).to_payload()
        payload["reorder_level"] = ""
        product = create_product(payload)
        self.assertEqual(product.category, self.dairy)
        self.assertEqual(product.price, Decimal("40"))
        self.assertEqual(product.units, 10)
        self.assertEqual(product.reorder_level, 5)
        self.assertIsNone(product.expiry_date)
        self.assertEqual(product.location, "warehouse")

    def test_unknown_category_is_reported_on_the_field(self):
        with self.assertRaises(ValidationError) as ctx:
            create_product(ProductDraft(milk_values(category="Toys")).to_payload())
        self.assertIn("category", ctx.exception.message_dict)
        self.assertFalse(Product.objects.exists())

    def test_product_stock_flags(self):
        today = timezone.localdate()
        product = Product.objects.create(
            product_name="Yogurt", category=self.dairy, price=Decimal("25"), units=4,
            reorder_level=5, expiry_date=today + timedelta(days=1),
        )
        self.assertTrue(product.needs_reorder)
        self.assertFalse(product.is_expired)
        self.assertTrue(product.is_near_expiry)

    def test_expired_product_is_not_near_expiry(self):
        product = Product(
            product_name="Bread", category=self.dairy, price=Decimal("30"), units=8,
            expiry_date=timezone.localdate() - timedelta(days=1),
        )
        self.assertTrue(product.is_expired)
        self.assertFalse(product.is_near_expiry)
        product.expiry_date = timezone.localdate()
        self.assertFalse(product.is_expired)
        self.assertTrue(product.is_near_expiry)


class ProductCreateFlowTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='clerk', password='pass')
        perms = Permission.objects.filter(codename__in=['add_product', 'view_product', 'add_category'])
        self.user.user_permissions.set(perms)
        Category.objects.create(name='Dairy')
        Category.objects.create(name='Bakery')
        self.url = reverse('products:product_create')

    def post(self, **data):
        self.client.force_login(self.user)
        return self.client.post(self.url, data)

    def test_form_renders_categories(self):
        self.client.force_login(self.user)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['form'].fields['category'].choices[1:], [('Bakery', 'Bakery'), ('Dairy', 'Dairy')])
        self.assertContains(response, 'Pick expiry date')

    def test_valid_submit_creates_product(self):
        expiry = timezone.localdate() + timedelta(days=10)
        response = self.post(action='submit', expiry_date=expiry.isoformat(), **milk_values())
        self.assertRedirects(response, reverse('products:product_list'))
        product = Product.objects.get()
        self.assertEqual(product.product_name, 'Milk')
        self.assertEqual(product.expiry_date, expiry)
        self.assertEqual(product.reorder_level, 5)

    def test_invalid_submit_rerenders_with_errors(self):
        response = self.post(action='submit', **milk_values(product_name='A'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Product name must be at least 2 characters')
        self.assertFalse(Product.objects.exists())

    def test_past_expiry_date_is_rejected(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        response = self.post(action='submit', expiry_date=yesterday.isoformat(), **milk_values())
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Expiry date cannot be in the past')
        self.assertFalse(Product.objects.exists())

    def test_non_numeric_units_reported_inline(self):
        response = self.post(action='submit', **milk_values(units='ten'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['form'].errors['units'])
        self.assertFalse(Product.objects.exists())

    def test_cancel_skips_validation_and_creates_nothing(self):
        response = self.post(action='cancel', product_name='A')
        self.assertRedirects(response, reverse('products:product_list'))
        self.assertFalse(Product.objects.exists())

    def test_add_category_round_trip_keeps_draft(self):
        response = self.post(action='add_category', **milk_values(category='', product_name='Cheddar'))
        category_url = reverse('products:category_create')
        self.assertRedirects(response, f'{category_url}?next={self.url}')
        self.assertEqual(self.client.session[SESSION_DRAFT_KEY]['product_name'], 'Cheddar')
        self.assertFalse(Product.objects.exists())

        response = self.client.post(category_url, {'name': 'Cheese', 'next': self.url})
        self.assertRedirects(response, self.url, fetch_redirect_response=False)
        self.assertTrue(Category.objects.filter(name='Cheese').exists())

        response = self.client.get(self.url)
        form = response.context['form']
        self.assertEqual(form['product_name'].value(), 'Cheddar')
        self.assertEqual(form['category'].value(), 'Cheese')

    def test_parked_draft_is_restored_only_once(self):
        self.post(action='add_category', **milk_values(product_name='Cheddar', price='9'))
        self.client.get(reverse('products:product_list'))

        first = self.client.get(self.url).context['form']
        self.assertEqual(first['product_name'].value(), 'Cheddar')
        self.assertEqual(first['price'].value(), '9')

        second = self.client.get(self.url).context['form']
        self.assertEqual(second['product_name'].value(), '')
        self.assertEqual(second['price'].value(), '')
        self.assertEqual(second['reorder_level'].value(), '5')
        self.assertNotIn(SESSION_DRAFT_KEY, self.client.session)

    def test_duplicate_category_is_rejected(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse('products:category_create'), {'name': 'dairy'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Category.objects.count(), 2)

    def test_unsafe_next_url_is_ignored(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse('products:category_create'), {'name': 'Cheese', 'next': 'https://example.com/'})
        self.assertRedirects(response, self.url)

    def test_user_without_permission_is_denied(self):
        user = get_user_model().objects.create_user(username='viewer', password='pass')
        self.client.force_login(user)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 403)

    def test_product_list_shows_products(self):
        self.post(action='submit', **milk_values())
        response = self.client.get(reverse('products:product_list'))
        self.assertContains(response, 'Milk')
        self.assertEqual(response.context['total_products'], 1)


class SeedCategoriesCommandTests(TestCase):
    def test_seeds_defaults_once(self):
        out = StringIO()
        call_command('seed_categories', stdout=out)
        seeded = Category.objects.count()
        self.assertGreater(seeded, 0)
        call_command('seed_categories', stdout=out)
        self.assertEqual(Category.objects.count(), seeded)

    def test_seeds_named_categories(self):
        call_command('seed_categories', 'Frozen', 'Produce', stdout=StringIO())
        self.assertEqual(list(Category.objects.values_list('name', flat=True)), ['Frozen', 'Produce'])
