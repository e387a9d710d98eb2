# annonces/serializers.py
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from users.serializers import UserPublicSerializer
from .models import Annonce, MethodePaiement, TypeMarchandise


class AnnonceSerializer(serializers.ModelSerializer):
    conducteur = UserPublicSerializer(read_only=True)
    statut_display = serializers.CharField(source='get_statut_display', read_only=True)
    est_active = serializers.BooleanField(read_only=True)

    class Meta:
        model = Annonce
        fields = [
            'id', 'conducteur', 'titre', 'description',
            'ville_depart', 'adresse_depart', 'ville_destination', 'adresse_destination',
            'distance_km', 'duree_estimee_h', 'date_depart', 'date_arrivee_estimee',
            'longueur_max', 'largeur_max', 'hauteur_max', 'poids_max', 'volume_max',
            'types_marchandise', 'type_tarification', 'prix_par_kg', 'prix_fixe', 'devise',
            'type_vehicule', 'paiements_acceptes', 'statut', 'statut_display', 'est_active',
            'nombre_vues', 'nombre_demandes', 'nombre_demandes_acceptees', 'taux_acceptation',
            'date_moderation', 'raison_moderation', 'created', 'updated',
        ]
        read_only_fields = fields


class AnnonceWriteSerializer(serializers.ModelSerializer):
    types_marchandise = serializers.ListField(
        child=serializers.ChoiceField(choices=TypeMarchandise.choices), allow_empty=False
    )
    paiements_acceptes = serializers.ListField(
        child=serializers.ChoiceField(choices=MethodePaiement.choices), allow_empty=False
    )

    class Meta:
        model = Annonce
        fields = [
            'titre', 'description',
            'ville_depart', 'adresse_depart', 'ville_destination', 'adresse_destination',
            'distance_km', 'duree_estimee_h', 'date_depart', 'date_arrivee_estimee',
            'longueur_max', 'largeur_max', 'hauteur_max', 'poids_max',
            'types_marchandise', 'type_tarification', 'prix_par_kg', 'prix_fixe', 'devise',
            'type_vehicule', 'paiements_acceptes', 'statut',
        ]

    def validate_date_depart(self, value):
        # La date existante reste valide lors d'une modification partielle
        if self.instance is not None and value == self.instance.date_depart:
            return value
        if value <= timezone.now():
            raise serializers.ValidationError(_('La date de départ doit être dans le futur'))
        return value

    def validate_statut(self, value):
        request = self.context.get('request')
        if request is not None and request.user.is_admin():
            return value
        suspendue = Annonce.Statut.SUSPENDUE
        if value == suspendue or (self.instance is not None and self.instance.statut == suspendue):
            raise serializers.ValidationError(_("Seul un administrateur peut modifier la suspension d'une annonce"))
        return value

    def validate(self, attrs):
        type_tarification = attrs.get('type_tarification', getattr(self.instance, 'type_tarification', None))
        prix_par_kg = attrs.get('prix_par_kg', getattr(self.instance, 'prix_par_kg', None))
        prix_fixe = attrs.get('prix_fixe', getattr(self.instance, 'prix_fixe', None))

        if type_tarification == Annonce.TypeTarification.PAR_KG and prix_par_kg is None:
            raise serializers.ValidationError({'prix_par_kg': _('Le prix par kg est requis pour ce type de tarification')})
        if type_tarification == Annonce.TypeTarification.PRIX_FIXE and prix_fixe is None:
            raise serializers.ValidationError({'prix_fixe': _('Le prix fixe est requis pour ce type de tarification')})

        date_depart = attrs.get('date_depart', getattr(self.instance, 'date_depart', None))
        date_arrivee = attrs.get('date_arrivee_estimee')
        if date_arrivee and date_depart and date_arrivee <= date_depart:
            raise serializers.ValidationError({
                'date_arrivee_estimee': _("La date d'arrivée doit être postérieure à la date de départ")
            })
        return attrs


class ModerationSerializer(serializers.Serializer):
    statut = serializers.ChoiceField(choices=[
        Annonce.Statut.ACTIVE, Annonce.Statut.INACTIVE, Annonce.Statut.SUSPENDUE, Annonce.Statut.ANNULEE,
    ])
    raison = serializers.CharField(required=False, min_length=10, max_length=500)
