import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class HemolinkConfig(AppConfig):
    name = 'hemolink'

    def ready(self):
        if settings.HEMOLINK.get('BACKEND') != 'firebase':
            return
        from .firebase_config import initialize_firebase
        try:
            initialize_firebase(settings.HEMOLINK.get('FIREBASE_DATABASE_URL'))
        except (ValueError, OSError) as e:
            logger.error("Failed to initialise Firebase: %s", e)
