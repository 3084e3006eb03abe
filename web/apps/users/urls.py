from django.urls import path

from .views import UserDetailView, UserOrdersView, UsersCollectionView

app_name = "users"

urlpatterns = [
    path("", UsersCollectionView.as_view(), name="users-collection"),
    path("<int:user_id>/", UserDetailView.as_view(), name="users-detail"),
    path("<int:user_id>/orders/", UserOrdersView.as_view(), name="users-orders"),
]
