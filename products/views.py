import logging
from functools import partial

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin, PermissionRequiredMixin
from django.core.exceptions import ValidationError
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views import View

from .controller import ProductFormController
from .draft import DEFAULT_VALUES, ProductDraft
from .forms import CategoryForm, ProductForm
from .models import Product
from .services import category_names, create_product

logger = logging.getLogger(__name__)

# Draft parked while the user is away adding a category.
SESSION_DRAFT_KEY = "products.product_draft"


class ProductCreateView(LoginRequiredMixin, PermissionRequiredMixin, View):
    permission_required = "products.add_product"
    template_name = "products/product_form.html"

    def get(self, request):
        # A parked draft is restored once; later visits start from defaults.
        draft = ProductDraft(request.session.pop(SESSION_DRAFT_KEY, None))
        form = ProductForm(initial=draft.as_dict(), categories=category_names())
        return render(request, self.template_name, {"form": form})

    def post(self, request):
        draft = ProductDraft({name: request.POST.get(name, default) for name, default in DEFAULT_VALUES.items()})
        categories = category_names()
        controller = ProductFormController(
            categories,
            on_submit=partial(self.product_submitted, request),
            on_cancel=partial(self.cancelled, request),
            on_open_add_category=partial(self.add_category_requested, request, draft),
            draft=draft,
        )

        action = request.POST.get("action", "submit")
        if action == "cancel":
            return controller.cancel()
        if action == "add_category":
            return controller.open_add_category()

        form = ProductForm(data=draft.as_dict(), categories=categories)
        try:
            return controller.submit()
        except ValidationError as exc:
            if form.is_valid():
                # Rejected by the persistence layer after the draft passed.
                for field, errors in exc.message_dict.items():
                    form.add_error(field if field in form.fields else None, errors)
        return render(request, self.template_name, {"form": form})

    def product_submitted(self, request, payload):
        product = create_product(payload)
        request.session.pop(SESSION_DRAFT_KEY, None)
        messages.success(request, f"Product '{product.product_name}' added.")
        return redirect("products:product_list")

    def cancelled(self, request):
        request.session.pop(SESSION_DRAFT_KEY, None)
        messages.info(request, "Product creation cancelled.")
        return redirect("products:product_list")

    def add_category_requested(self, request, draft):
        request.session[SESSION_DRAFT_KEY] = draft.as_dict()
        return redirect(f"{reverse('products:category_create')}?next={reverse('products:product_create')}")


class CategoryCreateView(LoginRequiredMixin, PermissionRequiredMixin, View):
    permission_required = "products.add_category"
    template_name = "products/category_form.html"

    def get(self, request):
        return render(request, self.template_name, {"form": CategoryForm(), "next": self._next_url(request)})

    def post(self, request):
        form = CategoryForm(request.POST)
        if form.is_valid():
            category = form.save()
            draft = request.session.get(SESSION_DRAFT_KEY)
            if draft is not None:
                draft["category"] = category.name
                request.session[SESSION_DRAFT_KEY] = draft
            logger.info("Category %s added", category.name)
            messages.success(request, f"Category '{category.name}' added.")
            return redirect(self._next_url(request))
        return render(request, self.template_name, {"form": form, "next": self._next_url(request)})

    def _next_url(self, request):
        next_url = request.POST.get("next") or request.GET.get("next")
        if next_url and url_has_allowed_host_and_scheme(
            next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
        ):
            return next_url
        return reverse("products:product_create")


class ProductListView(LoginRequiredMixin, PermissionRequiredMixin, View):
    permission_required = "products.view_product"

    def get(self, request):
        products = Product.objects.select_related("category")
        low_stock = [product for product in products if product.needs_reorder]
        return render(request, "products/product_list.html", {
            "products": products,
            "low_stock_count": len(low_stock),
            "total_products": len(products),
        })
