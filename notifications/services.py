import logging

from .models import Notification

logger = logging.getLogger('transport_connect.notifications')


def notify(user, type, titre, message, demande=None, lien=''):
    """Enregistre une notification in-app. Aucun email n'est envoyé."""
    notification = Notification.objects.create(
        user=user,
        type=type,
        titre=titre,
        message=message,
        demande=demande,
        lien=lien,
    )
    logger.info("Notification %s envoyée à %s", type, user.email)
    return notification
