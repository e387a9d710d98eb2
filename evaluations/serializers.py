# evaluations/serializers.py
from rest_framework import serializers

from users.serializers import UserPublicSerializer
from .models import Evaluation


class EvaluationSerializer(serializers.ModelSerializer):
    evaluateur = UserPublicSerializer(read_only=True)
    type_evaluation_display = serializers.CharField(source='get_type_evaluation_display', read_only=True)

    class Meta:
        model = Evaluation
        fields = [
            'id', 'demande', 'evaluateur', 'evalue', 'type_evaluation', 'type_evaluation_display',
            'note', 'commentaire', 'recommande', 'created',
        ]
        read_only_fields = fields


class EvaluationCreateSerializer(serializers.Serializer):
    demande = serializers.UUIDField()
    note = serializers.IntegerField(min_value=1, max_value=5)
    commentaire = serializers.CharField(required=False, allow_blank=True, max_length=500)
    recommande = serializers.BooleanField(required=False, default=True)
