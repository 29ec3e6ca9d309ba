from django.contrib import admin
from .models import Category, Product

@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'created_at')
    search_fields = ('name',)

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('product_name', 'category', 'price', 'units', 'reorder_level', 'location', 'expiry_date', 'needs_reorder')
    list_filter = ('location', 'category')
    search_fields = ('product_name', 'category__name')
