from django.urls import path

from .views import OrdersCollectionView, RetrieveOrderView

app_name = "orders"

urlpatterns = [
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create
    path("<int:order_id>/", RetrieveOrderView.as_view(), name="orders-detail"),
]
