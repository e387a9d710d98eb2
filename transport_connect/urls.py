# transport_connect/urls.py
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

from core.views import HealthView

urlpatterns = [
    # Redirection de la racine vers Swagger
    path('', RedirectView.as_view(url='/api/docs/', permanent=False)),

    # Administration Django
    path('admin/', admin.site.urls),

    # API Routes
    path('api/', include('users.urls')),           # Inscription, connexion, profil
    path('api/', include('annonces.urls')),        # Annonces de trajets
    path('api/', include('demandes.urls')),        # Demandes, statuts, suivi
    path('api/', include('notifications.urls')),   # Notifications
    path('api/', include('evaluations.urls')),     # Évaluations

    path('api/health/', HealthView.as_view(), name='health'),

    # Documentation API Swagger/OpenAPI
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
