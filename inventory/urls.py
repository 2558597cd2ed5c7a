"""
URL routing for product and stock API endpoints.
"""
from django.urls import path
from . import views

app_name = 'inventory'

PRODUCT = 'spaces/<uuid:space_id>/products/<uuid:product_id>/'

urlpatterns = [
    # Products
    path('spaces/<uuid:space_id>/products/', views.ProductListCreateView.as_view(), name='product-list'),
    path('spaces/<uuid:space_id>/products/low-stock/', views.LowStockProductListView.as_view(), name='product-low-stock'),
    path(PRODUCT, views.ProductDetailView.as_view(), name='product-detail'),

    # Stock ledger
    path(PRODUCT + 'stock/add/', views.StockAddView.as_view(), name='stock-add'),
    path(PRODUCT + 'stock/remove/', views.StockRemoveView.as_view(), name='stock-remove'),
    path(PRODUCT + 'stock/history/', views.StockHistoryView.as_view(), name='stock-history'),
]
