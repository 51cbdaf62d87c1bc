"""
URL configuration for trains app.
"""
from django.urls import path
from .views import TrainSearchView, TrainManageView, TrainDetailView, TrainAvailabilityView

urlpatterns = [
    path('search/', TrainSearchView.as_view(), name='train_search'),
    path('<int:train_id>/', TrainDetailView.as_view(), name='train_detail'),
    path('<int:train_id>/availability/', TrainAvailabilityView.as_view(), name='train_availability'),
    path('', TrainManageView.as_view(), name='train_manage'),
]
