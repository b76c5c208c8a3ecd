import json
import logging
from typing import Optional

from django.conf import settings
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials as UserCredentials
from googleapiclient.discovery import build

from distributions.services.storage import FileStorageProvider

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/drive.file']
FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'


def _safe_segment(value: str, fallback: str = 'UNKNOWN') -> str:
    v = (value or '').strip()
    if not v:
        return fallback
    return v.replace('/', '_').replace('\\', '_')[:120]


class GoogleDriveStorageProvider(FileStorageProvider):
    """Creates nested Drive folders under DOCUMENT_STORAGE_PARENT_FOLDER_ID.

    Credentials are OAuth user credentials read from GOOGLE_DRIVE_TOKEN_JSON.
    """

    name = 'google-drive'

    def __init__(self, service=None, parent_folder_id: Optional[str] = None):
        self._service = service
        self.parent_folder_id = parent_folder_id if parent_folder_id is not None else settings.DOCUMENT_STORAGE_PARENT_FOLDER_ID

    @property
    def service(self):
        if self._service is None:
            self._service = build('drive', 'v3', credentials=self._credentials(), cache_discovery=False)
            logger.info('Initialized Google Drive client')
        return self._service

    def _credentials(self) -> UserCredentials:
        token_json = getattr(settings, 'GOOGLE_DRIVE_TOKEN_JSON', '')
        if not token_json:
            raise RuntimeError('GOOGLE_DRIVE_TOKEN_JSON is not configured')
        creds = UserCredentials.from_authorized_user_info(json.loads(token_json), SCOPES)
        if creds.expired and creds.refresh_token:
            logger.info('Refreshing Google Drive OAuth token')
            creds.refresh(Request())
        return creds

    def _ensure_folder(self, name: str, parent_id: Optional[str]) -> str:
        safe_name = name.replace("'", "\\'")
        q = f"mimeType = '{FOLDER_MIME_TYPE}' and name = '{safe_name}' and trashed = false"
        if parent_id:
            q += f" and '{parent_id}' in parents"

        found = self.service.files().list(q=q, spaces='drive', fields='files(id, name)', pageSize=1).execute()
        files = found.get('files', [])
        if files:
            return files[0]['id']

        body = {'name': name, 'mimeType': FOLDER_MIME_TYPE}
        if parent_id:
            body['parents'] = [parent_id]
        created = self.service.files().create(body=body, fields='id').execute()
        logger.info('Created Drive folder %s (%s)', name, created['id'])
        return created['id']

    def create_folder(self, path: str) -> Optional[str]:
        parent_id = self.parent_folder_id or None
        for segment in [s for s in (path or '').split('/') if s.strip()]:
            parent_id = self._ensure_folder(_safe_segment(segment), parent_id)
        return parent_id
