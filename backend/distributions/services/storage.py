"""File storage providers used when a distribution is created.

Folder creation is best-effort: a failing provider leaves the distribution
without a folder reference and never fails the create.
"""
import logging
from typing import Optional

from django.conf import settings
from django.utils.module_loading import import_string

from core.exceptions import DegradedIntegrationFailure

logger = logging.getLogger(__name__)


class FileStorageProvider:
    name = 'base'

    def create_folder(self, path: str) -> Optional[str]:
        """Create `path` (slash separated) and return the leaf folder id."""
        raise NotImplementedError


class NullStorageProvider(FileStorageProvider):
    name = 'null'

    def create_folder(self, path: str) -> Optional[str]:
        return None


def get_storage_provider() -> FileStorageProvider:
    dotted = getattr(settings, 'DOCUMENT_STORAGE_PROVIDER', '') or 'distributions.services.storage.NullStorageProvider'
    try:
        return import_string(dotted)()
    except Exception as exc:
        logger.warning('Storage provider %s unavailable, using null provider: %s', dotted, exc)
        return NullStorageProvider()


def create_folder_best_effort(provider: FileStorageProvider, path: str) -> Optional[str]:
    try:
        return provider.create_folder(path) or None
    except Exception as exc:
        failure = DegradedIntegrationFailure('Storage folder creation failed', provider=provider.name, path=path)
        logger.warning('%s', {
            'event': 'storage_folder_failed',
            'error': failure.code,
            'provider': failure.details['provider'],
            'path': path,
            'reason': str(exc),
        })
        return None
