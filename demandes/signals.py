from django.dispatch import Signal

# Envoyé après chaque changement de statut d'une demande.
# Arguments: demande, ancien_statut, nouveau_statut, acteur, commentaire
statut_demande_modifie = Signal()
