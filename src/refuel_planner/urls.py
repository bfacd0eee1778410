from django.urls import path

from refuel_planner import views

urlpatterns = [
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/companies", views.companies_view, name="companies"),
    path("api/v1/refuel-stops", views.refuel_stops_view, name="refuel-stops"),
]
