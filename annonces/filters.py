# annonces/filters.py
from django_filters import rest_framework as django_filters

from .models import Annonce, TypeMarchandise


class AnnonceFilter(django_filters.FilterSet):
    ville_depart = django_filters.CharFilter(lookup_expr='icontains')
    ville_destination = django_filters.CharFilter(lookup_expr='icontains')
    date_depart_min = django_filters.DateFilter(field_name='date_depart', lookup_expr='date__gte')
    date_depart_max = django_filters.DateFilter(field_name='date_depart', lookup_expr='date__lte')
    type_marchandise = django_filters.ChoiceFilter(choices=TypeMarchandise.choices, method='filter_type_marchandise')
    statut = django_filters.ChoiceFilter(choices=Annonce.Statut.choices)
    prix_max = django_filters.NumberFilter(field_name='prix_par_kg', lookup_expr='lte')

    class Meta:
        model = Annonce
        fields = ['ville_depart', 'ville_destination', 'type_vehicule', 'statut']

    def filter_type_marchandise(self, queryset, name, value):
        # Liste JSON stockée en texte: on cherche la valeur entre guillemets
        return queryset.filter(types_marchandise__icontains=f'"{value}"')
