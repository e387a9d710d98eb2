import logging
import math

from django.utils.translation import gettext as _
from rest_framework import exceptions
from rest_framework.throttling import SimpleRateThrottle

logger = logging.getLogger('transport_connect.core')


class LoginThrottled(exceptions.Throttled):
    def __init__(self, wait):
        minutes = max(1, math.ceil(wait / 60))
        super().__init__(
            detail=_("Trop de tentatives de connexion. Réessayez dans %(minutes)s minutes.") % {'minutes': minutes}
        )
        self.wait = math.ceil(wait)


class LoginRateThrottle(SimpleRateThrottle):
    """
    Limite les tentatives de connexion par adresse client.

    L'historique vit dans le cache Django avec une durée de vie égale à la fenêtre,
    ce qui borne la mémoire et partage les compteurs entre instances si le cache l'est.
    Le taux s'écrit "<tentatives>/<secondes>", par exemple "5/900".
    """
    scope = 'login'

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        num, period = rate.split('/')
        return int(num), int(period)

    def get_cache_key(self, request, view):
        return self.cache_format % {
            'scope': self.scope,
            'ident': self.get_ident(request),
        }

    def throttle_failure(self):
        logger.warning("Connexion limitée pour %s", self.key)
        return False

    def reset(self, request):
        self.cache.delete(self.get_cache_key(request, None))
