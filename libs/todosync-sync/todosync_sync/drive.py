"""Google Drive (v3) remote store.

The service object is built elsewhere (todosync_cli.gauth); this module only
issues files().list/get/get_media/update calls against existing files.
"""

import io
import logging
from collections.abc import Iterable

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from todosync_core.errors import (
    DataError,
    MissingRemoteError,
    SetupError,
    TodoSyncError,
    TransientError,
)
from todosync_core.models import RemoteObject

from todosync_sync.ports import RemoteStore

logger = logging.getLogger(__name__)

UPLOAD_MIME_TYPE = "text/plain"

# Everything a request can raise on the way to Drive and back
CLIENT_ERRORS = (HttpError, RefreshError, TransportError, httplib2.HttpLib2Error, OSError)


def _quote(name: str) -> str:
    return "'" + name.replace("\\", "\\\\").replace("'", "\\'") + "'"


def build_name_query(names: Iterable[str]) -> str:
    """Drive query matching any of the names, excluding trashed files."""
    clauses = " or ".join(f"name = {_quote(n)}" for n in names)
    return f"({clauses}) and trashed = false"


def _map_error(e: Exception, operation: str, object_id: str | None) -> TodoSyncError:
    """Translate a client error into the todosync error taxonomy."""
    if isinstance(e, HttpError):
        status = e.resp.status
        if status == 404:
            return DataError(f"Remote file not found: {e}", operation, object_id, e)
        if status in (401, 403):
            return SetupError(f"Drive refused access: {e}", operation, object_id, e)
        return TransientError(f"Drive request failed: {e}", operation, object_id, e)
    if isinstance(e, RefreshError):
        return SetupError(f"OAuth token refresh refused: {e}", operation, object_id, e)
    return TransientError(f"Drive unreachable: {e}", operation, object_id, e)


class DriveStore(RemoteStore):
    """RemoteStore backed by a googleapiclient Drive v3 service."""

    def __init__(self, service, *, mime_type: str = UPLOAD_MIME_TYPE):
        self.service = service
        self.mime_type = mime_type

    def list_by_name(self, names: Iterable[str]) -> list[RemoteObject]:
        names = sorted(set(names))
        query = build_name_query(names)
        out: list[RemoteObject] = []
        page_token = None
        try:
            while True:
                resp = (
                    self.service.files()
                    .list(
                        q=query,
                        orderBy="name",
                        fields="nextPageToken, files(id, name)",
                        pageToken=page_token,
                    )
                    .execute()
                )
                for f in resp.get("files", []):
                    out.append(RemoteObject(id=f["id"], name=f["name"]))
                page_token = resp.get("nextPageToken")
                if not page_token:
                    break
        except CLIENT_ERRORS as e:
            raise _map_error(e, "list", None) from e

        if not out:
            raise MissingRemoteError(
                f"No files found in Google Drive matching: {', '.join(names)}", "list"
            )
        out.sort(key=lambda o: o["name"])
        return out

    def fingerprint_of(self, object_id: str) -> str | None:
        try:
            meta = (
                self.service.files()
                .get(fileId=object_id, fields="md5Checksum, size, version")
                .execute()
            )
        except CLIENT_ERRORS as e:
            raise _map_error(e, "get-metadata", object_id) from e
        logger.debug(
            f"md5={meta.get('md5Checksum')} vers={meta.get('version')} size={meta.get('size')}"
        )
        # Google-native documents carry no checksum
        return meta.get("md5Checksum")

    def download(self, object_id: str) -> bytes:
        buf = io.BytesIO()
        try:
            request = self.service.files().get_media(fileId=object_id)
            downloader = MediaIoBaseDownload(buf, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except CLIENT_ERRORS as e:
            raise _map_error(e, "download", object_id) from e
        return buf.getvalue()

    def upload(self, object_id: str, data: bytes) -> None:
        # Empty body: name, parents and description stay as they are.
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=self.mime_type, resumable=False)
        try:
            self.service.files().update(
                fileId=object_id,
                body={},
                media_body=media,
                fields="id, name, modifiedTime",
            ).execute()
        except CLIENT_ERRORS as e:
            raise _map_error(e, "upload", object_id) from e
        logger.info(f"Uploaded {len(data)} bytes to Drive file {object_id}")
