from django.urls import path
from .views import (
    ParentListCreateView,
    ParentDetailView,
    ParentByClerkIdView,
    ChildAuthenticateView,
    ChildCreateView,
    ChildrenByParentView,
    ChildLocationHistoryView,
    GeoFenceListCreateView,
    GeoFencesByParentView,
    GeoFenceDetailView,
    api_health_check,
)

urlpatterns = [
    # Health Check
    path('health/', api_health_check, name='api-health-check'),

    # Parents
    path('parents/', ParentListCreateView.as_view(), name='parent-list'),
    path('parents/clerk/<str:clerk_id>/', ParentByClerkIdView.as_view(), name='parent-by-clerk'),
    path('parents/<int:parent_id>/', ParentDetailView.as_view(), name='parent-detail'),

    # Children
    path('children/authenticate/', ChildAuthenticateView.as_view(), name='child-authenticate'),
    path('children/create/', ChildCreateView.as_view(), name='child-create'),
    path('children/by-parent/<int:parent_id>/', ChildrenByParentView.as_view(), name='children-by-parent'),
    path('children/<int:child_id>/locations/', ChildLocationHistoryView.as_view(), name='child-location-history'),

    # Geofencing
    path('geofencing/', GeoFenceListCreateView.as_view(), name='geofence-list'),
    path('geofencing/parent/<int:parent_id>/', GeoFencesByParentView.as_view(), name='geofences-by-parent'),
    path('geofencing/<int:geofence_id>/', GeoFenceDetailView.as_view(), name='geofence-detail'),
]
