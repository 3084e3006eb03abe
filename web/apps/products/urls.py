from django.urls import path

from .views import ProductDetailView, ProductsCollectionView

app_name = "products"

urlpatterns = [
    path("", ProductsCollectionView.as_view(), name="products-collection"),  # GET list / POST create
    path("<int:product_id>/", ProductDetailView.as_view(), name="products-detail"),
]
