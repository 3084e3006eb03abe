from django.urls import include, path

urlpatterns = [
    path("api/", include("apps.monitoring.urls")),
    path("api/users/", include("apps.users.urls")),
    path("api/products/", include("apps.products.urls")),
    path("api/orders/", include("apps.orders.urls")),
]
