"""
URL routing for space API endpoints.
"""
from django.urls import path
from . import views

app_name = 'spaces'

urlpatterns = [
    path('spaces/', views.SpaceListCreateView.as_view(), name='space-list'),
    path('spaces/creation-status/', views.SpaceCreationStatusView.as_view(), name='space-creation-status'),
    path('spaces/<uuid:space_id>/', views.SpaceDetailView.as_view(), name='space-detail'),
]
