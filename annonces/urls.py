# annonces/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r'annonces', views.AnnonceViewSet, basename='annonce')
router.register(r'admin/annonces', views.AdminAnnonceViewSet, basename='admin-annonce')

urlpatterns = [
    path('', include(router.urls)),
]
