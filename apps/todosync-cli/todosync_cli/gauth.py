"""Google credentials and Drive service construction.

Auth precedence:
  1) Service account (service-account-file / GOOGLE_APPLICATION_CREDENTIALS)
  2) OAuth client in credentials-file (token cached in token-file)
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from todosync_core.errors import SetupError
from todosync_core.models import SyncConfig

logger = logging.getLogger(__name__)


def _save_token(path: Path, creds) -> None:
    logger.info(f"Saving credential file to: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(creds.to_json())


def get_credentials(config: SyncConfig, *, interactive: bool = True):
    """Return Google credentials (service account preferred; else OAuth)."""
    from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials as UserCreds
    from google.oauth2.service_account import Credentials as SA
    from google_auth_oauthlib.flow import InstalledAppFlow

    scopes = list(config.scopes)

    # 1) Service account
    sa_path = config.service_account_file
    if sa_path is not None:
        if not sa_path.exists():
            raise SetupError("Service account file not found", "auth", str(sa_path))
        try:
            return SA.from_service_account_file(str(sa_path), scopes=scopes)
        except (ValueError, GoogleAuthError) as e:
            raise SetupError(f"Invalid service account file: {e}", "auth", str(sa_path), e) from e

    # 2) OAuth with a cached token
    token = config.token_file
    secret = config.credentials_file
    creds = None
    if token.exists():
        try:
            creds = UserCreds.from_authorized_user_file(str(token), scopes)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable token file {token}: {e}")
            creds = None

    if creds and not creds.valid and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            _save_token(token, creds)
        except RefreshError as e:
            logger.warning(f"Token refresh failed, re-authorizing: {e}")
            creds = None
        except TransportError as e:
            raise SetupError(
                f"Can't reach Google to refresh the OAuth token: {e}", "auth", str(token), e
            ) from e

    if not creds or not creds.valid:
        if not secret.exists():
            raise SetupError(
                "No service account and no OAuth client secret; "
                "download the OAuth client JSON from the Google Cloud console",
                "auth",
                str(secret),
            )
        if not interactive:
            raise SetupError("OAuth token missing or expired; run 'todosync auth'", "auth", str(token))
        flow = InstalledAppFlow.from_client_secrets_file(str(secret), scopes)
        creds = flow.run_local_server(port=0)
        _save_token(token, creds)
    return creds


def build_drive_service(config: SyncConfig, *, interactive: bool = True):
    """Drive v3 service for the configured credentials."""
    import httplib2
    from googleapiclient.discovery import build
    from googleapiclient.errors import Error as ClientError

    creds = get_credentials(config, interactive=interactive)
    try:
        return build("drive", "v3", credentials=creds, cache_discovery=False)
    except (httplib2.HttpLib2Error, ClientError, OSError) as e:
        raise SetupError(f"Can't build the Drive service: {e}", "connect", None, e) from e
