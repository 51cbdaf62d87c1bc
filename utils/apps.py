import atexit

from django.apps import AppConfig
from django.conf import settings


class UtilsConfig(AppConfig):
    name = 'utils'

    def ready(self):
        from .mongo import MongoLogStore

        self.log_store = MongoLogStore(settings.MONGODB_URI, settings.MONGODB_NAME)
        atexit.register(self.log_store.close)
