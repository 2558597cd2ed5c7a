"""
URL routing for dashboard endpoints.
"""
from django.urls import path
from . import views

app_name = 'insights'

urlpatterns = [
    path('overview/', views.OverviewView.as_view(), name='overview'),
    path('insights/', views.InventoryInsightsView.as_view(), name='inventory-insights'),
    path('low-stock-alerts/', views.LowStockAlertsView.as_view(), name='low-stock-alerts'),
    path('space-metrics/', views.SpaceMetricsView.as_view(), name='space-metrics'),
    path('top-products/', views.TopProductsView.as_view(), name='top-products'),
    path('recent-activity/', views.RecentActivityView.as_view(), name='recent-activity'),
    path('trends/', views.InventoryTrendsView.as_view(), name='inventory-trends'),
]
