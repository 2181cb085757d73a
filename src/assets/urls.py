"""URL configuration for assets app."""

from django.urls import path

from . import views

app_name = "assets"

urlpatterns = [
    # Queries
    path(
        "api/assets/available/",
        views.available_assets,
        name="available_assets",
    ),
    path("api/assets/holding/", views.holding_assets, name="holding_assets"),
    # Bulk
    path(
        "api/assets/bulk-assign/",
        views.bulk_assign_view,
        name="bulk_assign",
    ),
    path("api/intake/", views.intake_view, name="intake"),
    # Single asset
    path("api/assets/", views.asset_create, name="asset_create"),
    path("api/assets/<uuid:pk>/", views.asset_detail, name="asset_detail"),
    path(
        "api/assets/<uuid:pk>/transition/",
        views.asset_transition,
        name="asset_transition",
    ),
    path(
        "api/assets/<uuid:pk>/assign/",
        views.asset_assign,
        name="asset_assign",
    ),
    path(
        "api/assets/<uuid:pk>/unassign/",
        views.asset_unassign,
        name="asset_unassign",
    ),
    path(
        "api/assets/<uuid:pk>/archive/",
        views.asset_archive,
        name="asset_archive",
    ),
    path(
        "api/assets/<uuid:pk>/history/",
        views.asset_history_view,
        name="asset_history",
    ),
]
