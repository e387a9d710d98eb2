import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from django.utils.translation import gettext_lazy as _
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('transport_connect.core')


class BusinessRuleError(exceptions.APIException):
    """Règle métier non respectée (HTTP 400)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Opération impossible")
    default_code = 'business_rule'


class IllegalTransition(BusinessRuleError):
    default_code = 'illegal_transition'

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f'Impossible de passer de "{current}" à "{target}"')


class ConcurrentModification(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = _("La demande a été modifiée par une autre opération, veuillez réessayer")
    default_code = 'concurrent_modification'


def _message_from(detail):
    if isinstance(detail, dict):
        if 'detail' in detail:
            return str(detail['detail'])
        if list(detail) == ['non_field_errors']:
            return _message_from(detail['non_field_errors'])
        return str(_("Certains champs sont manquants ou invalides."))
    if isinstance(detail, list):
        return ' '.join(str(item) for item in detail)
    return str(detail)


def api_exception_handler(exc, context):
    """
    Uniformise les réponses d'erreur: {"success": false, "message": ..., "errors": ...}.

    Les exceptions non gérées par DRF sont journalisées et deviennent une 500 générique.
    """
    if isinstance(exc, Http404):
        exc = exceptions.NotFound(_("Ressource non trouvée"))
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Erreur inattendue dans %s", view.__class__.__name__ if view else 'vue inconnue'
        )
        return Response(
            {'success': False, 'message': str(_("Erreur interne du serveur"))},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    detail = response.data
    payload = {'success': False, 'message': _message_from(detail)}
    if isinstance(exc, exceptions.ValidationError) and isinstance(detail, (dict, list)):
        payload['errors'] = detail
    response.data = payload
    return response
