# demandes/serializers.py
from django.conf import settings
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from annonces.models import Annonce
from users.serializers import UserPublicSerializer
from .models import Communication, Demande, EtapeSuivi
from .workflow import allowed_targets

LIMITES = settings.TRANSPORT_CONNECT


class EtapeSuiviSerializer(serializers.ModelSerializer):
    acteur_nom = serializers.CharField(source='acteur.nom_complet', read_only=True, default=None)
    statut_display = serializers.CharField(source='get_statut_display', read_only=True)

    class Meta:
        model = EtapeSuivi
        fields = ['id', 'statut', 'statut_display', 'ts', 'acteur', 'acteur_nom', 'commentaire', 'lieu']
        read_only_fields = fields


class CommunicationSerializer(serializers.ModelSerializer):
    auteur_nom = serializers.CharField(source='auteur.nom_complet', read_only=True)

    class Meta:
        model = Communication
        fields = ['id', 'auteur', 'auteur_nom', 'message', 'type', 'lu', 'created']
        read_only_fields = fields


class AnnonceResumeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Annonce
        fields = ['id', 'titre', 'ville_depart', 'ville_destination', 'date_depart', 'type_vehicule']
        read_only_fields = fields


class DemandeSerializer(serializers.ModelSerializer):
    expediteur = UserPublicSerializer(read_only=True)
    conducteur = UserPublicSerializer(read_only=True)
    annonce = AnnonceResumeSerializer(read_only=True)
    statut_display = serializers.CharField(source='get_statut_display', read_only=True)
    etapes = EtapeSuiviSerializer(many=True, read_only=True)
    communications = CommunicationSerializer(many=True, read_only=True)
    statuts_suivants = serializers.SerializerMethodField()

    class Meta:
        model = Demande
        fields = [
            'id', 'expediteur', 'conducteur', 'annonce', 'statut', 'statut_display', 'version',
            'statuts_suivants',
            'description', 'longueur', 'largeur', 'hauteur', 'poids', 'volume',
            'type_marchandise', 'valeur_declaree', 'fragile',
            'enlevement_nom', 'enlevement_telephone', 'enlevement_adresse', 'enlevement_ville',
            'enlevement_instructions',
            'livraison_nom', 'livraison_telephone', 'livraison_adresse', 'livraison_ville',
            'livraison_instructions',
            'montant_propose', 'montant_accepte', 'devise', 'methode_paiement', 'paiement_effectue',
            'numero_suivi', 'position_latitude', 'position_longitude', 'position_adresse', 'position_date',
            'date_reponse', 'date_enlevement_prevue', 'date_enlevement',
            'date_livraison_prevue', 'date_livraison_reelle',
            'litige_signale', 'litige_motif', 'litige_date', 'litige_resolu', 'litige_resolution', 'litige_decision',
            'litige_date_resolution',
            'etapes', 'communications', 'created', 'updated',
        ]
        read_only_fields = fields

    def get_statuts_suivants(self, obj):
        return sorted(allowed_targets(obj.statut))


class DemandeListSerializer(serializers.ModelSerializer):
    expediteur = UserPublicSerializer(read_only=True)
    conducteur = UserPublicSerializer(read_only=True)
    annonce = AnnonceResumeSerializer(read_only=True)
    statut_display = serializers.CharField(source='get_statut_display', read_only=True)

    class Meta:
        model = Demande
        fields = [
            'id', 'expediteur', 'conducteur', 'annonce', 'statut', 'statut_display', 'version',
            'description', 'poids', 'type_marchandise', 'montant_propose', 'montant_accepte', 'devise',
            'numero_suivi', 'litige_signale', 'created',
        ]
        read_only_fields = fields


class DemandeCreateSerializer(serializers.ModelSerializer):
    annonce = serializers.UUIDField(write_only=True)

    class Meta:
        model = Demande
        fields = [
            'annonce', 'description', 'longueur', 'largeur', 'hauteur', 'poids',
            'type_marchandise', 'valeur_declaree', 'fragile',
            'enlevement_nom', 'enlevement_telephone', 'enlevement_adresse', 'enlevement_ville',
            'enlevement_instructions',
            'livraison_nom', 'livraison_telephone', 'livraison_adresse', 'livraison_ville',
            'livraison_instructions',
            'montant_propose', 'devise', 'methode_paiement',
            'date_enlevement_prevue', 'date_livraison_prevue',
        ]

    def validate(self, attrs):
        enlevement = attrs.get('date_enlevement_prevue')
        livraison = attrs.get('date_livraison_prevue')
        if enlevement and livraison and livraison < enlevement:
            raise serializers.ValidationError({
                'date_livraison_prevue': _("La livraison ne peut pas précéder l'enlèvement")
            })
        return attrs


# =============================================================================
# ACTIONS
# =============================================================================

class ReponseSerializer(serializers.Serializer):
    action = serializers.CharField()
    commentaire = serializers.CharField(required=False, allow_blank=True, max_length=LIMITES['MAX_COMMENT_LENGTH'])


class StatutSerializer(serializers.Serializer):
    statut = serializers.ChoiceField(choices=Demande.Statut.choices)
    commentaire = serializers.CharField(required=False, allow_blank=True, max_length=LIMITES['MAX_COMMENT_LENGTH'])
    lieu = serializers.CharField(required=False, allow_blank=True, max_length=255)


class AnnulationSerializer(serializers.Serializer):
    motif = serializers.CharField(min_length=LIMITES['MIN_MOTIF_LENGTH'], max_length=LIMITES['MAX_COMMENT_LENGTH'])


class CommunicationCreateSerializer(serializers.Serializer):
    message = serializers.CharField(min_length=1, max_length=LIMITES['MAX_MESSAGE_LENGTH'])
    type = serializers.ChoiceField(choices=Communication.Type.choices, default=Communication.Type.MESSAGE)


class PositionSerializer(serializers.Serializer):
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)
    adresse = serializers.CharField(required=False, allow_blank=True, max_length=255)


class LitigeSerializer(serializers.Serializer):
    motif = serializers.CharField(min_length=LIMITES['MIN_MOTIF_LENGTH'], max_length=LIMITES['MAX_COMMENT_LENGTH'])


class ResolutionSerializer(serializers.Serializer):
    resolution = serializers.CharField(min_length=20, max_length=1000)
    decision = serializers.ChoiceField(choices=Demande.DecisionLitige.choices)


class LitigeListSerializer(serializers.ModelSerializer):
    expediteur = UserPublicSerializer(read_only=True)
    conducteur = UserPublicSerializer(read_only=True)
    annonce = AnnonceResumeSerializer(read_only=True)
    litige_signale_par = serializers.CharField(source='litige_signale_par.nom_complet', default=None, read_only=True)

    class Meta:
        model = Demande
        fields = [
            'id', 'numero_suivi', 'statut', 'expediteur', 'conducteur', 'annonce',
            'litige_motif', 'litige_signale_par', 'litige_date',
            'litige_resolu', 'litige_resolution', 'litige_decision', 'litige_date_resolution',
        ]
        read_only_fields = fields


# =============================================================================
# SUIVI PUBLIC
# =============================================================================

class EtapePubliqueSerializer(serializers.ModelSerializer):
    class Meta:
        model = EtapeSuivi
        fields = ['statut', 'ts', 'commentaire', 'lieu']
        read_only_fields = fields


class SuiviPublicSerializer(serializers.ModelSerializer):
    """Uniquement le sous-ensemble de suivi: aucune donnée personnelle."""
    date_creation = serializers.DateTimeField(source='created', read_only=True)
    position = serializers.SerializerMethodField()
    etapes = EtapePubliqueSerializer(many=True, read_only=True)
    trajet = serializers.SerializerMethodField()

    class Meta:
        model = Demande
        fields = [
            'numero_suivi', 'statut', 'date_creation', 'date_enlevement_prevue', 'date_enlevement',
            'date_livraison_prevue', 'date_livraison_reelle', 'position', 'etapes', 'trajet',
        ]
        read_only_fields = fields

    def get_position(self, obj):
        if obj.position_latitude is None:
            return None
        return {
            'latitude': obj.position_latitude,
            'longitude': obj.position_longitude,
            'adresse': obj.position_adresse,
            'date_maj': obj.position_date,
        }

    def get_trajet(self, obj):
        return {
            'depart': obj.annonce.ville_depart,
            'destination': obj.annonce.ville_destination,
        }
