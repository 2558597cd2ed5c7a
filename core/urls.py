"""
URL routing for audit log endpoints.
"""
from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('audit-logs/', views.AuditLogListView.as_view(), name='audit-log-list'),
    path('audit-logs/summary/', views.AuditLogSummaryView.as_view(), name='audit-log-summary'),
    path('audit-logs/trends/', views.AuditLogTrendsView.as_view(), name='audit-log-trends'),
]
