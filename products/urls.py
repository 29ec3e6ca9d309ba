from django.urls import path
from .views import (
    CategoryCreateView,
    ProductCreateView,
    ProductListView,
)

app_name = 'products'

urlpatterns = [
    path('', ProductListView.as_view(), name='product_list'),
    path('add/', ProductCreateView.as_view(), name='product_create'),
    path('categories/add/', CategoryCreateView.as_view(), name='category_create'),
]
