from django.urls import path

from . import views

urlpatterns = [
    path("crusts/", views.list_crusts, name="list_crusts"),
    path("crusts/<str:crust_id>/decrement/", views.decrement_stock, name="decrement_stock"),
]
