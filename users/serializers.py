# users/serializers.py
from rest_framework import serializers
from django.contrib.auth import authenticate
from django.utils.translation import gettext_lazy as _
from phonenumber_field.serializerfields import PhoneNumberField

from .models import Role, User


class UserSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    statut_display = serializers.CharField(source='get_statut_display', read_only=True)
    nom_complet = serializers.CharField(read_only=True)
    telephone = PhoneNumberField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'nom', 'prenom', 'nom_complet', 'telephone', 'ville',
            'role', 'role_display', 'statut', 'statut_display',
            'nombre_annonces', 'nombre_demandes_envoyees', 'nombre_demandes_acceptees',
            'note_moyenne', 'nombre_evaluations', 'notifications_email',
            'date_joined', 'last_login',
        ]
        read_only_fields = [
            'id', 'email', 'role', 'statut',
            'nombre_annonces', 'nombre_demandes_envoyees', 'nombre_demandes_acceptees',
            'note_moyenne', 'nombre_evaluations', 'date_joined', 'last_login',
        ]


class UserPublicSerializer(serializers.ModelSerializer):
    """Informations visibles par l'autre partie d'une transaction."""
    nom_complet = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'nom', 'prenom', 'nom_complet', 'telephone', 'role', 'note_moyenne', 'nombre_evaluations']
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=True, min_length=6)
    role = serializers.ChoiceField(choices=[Role.CONDUCTEUR, Role.EXPEDITEUR])
    telephone = PhoneNumberField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ['email', 'password', 'nom', 'prenom', 'telephone', 'ville', 'role']

    def validate_email(self, value):
        value = value.lower()
        if User.all_objects.filter(email=value).exists():
            raise serializers.ValidationError(_('Un utilisateur avec cet email existe déjà'))
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        user = authenticate(
            request=self.context.get('request'),
            email=attrs['email'].lower(),
            password=attrs['password'],
        )
        if not user:
            raise serializers.ValidationError(_('Email ou mot de passe incorrect'))
        if user.is_suspended():
            raise serializers.ValidationError(_('Votre compte est suspendu.'))

        attrs['user'] = user
        return attrs


class StatutUtilisateurSerializer(serializers.Serializer):
    statut = serializers.ChoiceField(choices=User.Statut.choices)
    raison = serializers.CharField(required=False, min_length=10, max_length=500)


class ProfileUpdateSerializer(serializers.ModelSerializer):
    telephone = PhoneNumberField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ['nom', 'prenom', 'telephone', 'ville', 'notifications_email']
