from django.urls import path

from toll_estimator import views

urlpatterns = [
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/countries", views.countries_view, name="countries"),
    path("api/v1/trip-cost", views.trip_cost_view, name="trip-cost"),
    path("api/v1/trip/update", views.trip_update_view, name="trip-update"),
    path(
        "api/v1/special-tolls/detect",
        views.special_toll_detection_view,
        name="special-toll-detect",
    ),
]
