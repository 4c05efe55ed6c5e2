from django.urls import include, path

urlpatterns = [
    path("", include("toll_estimator.urls")),
]
