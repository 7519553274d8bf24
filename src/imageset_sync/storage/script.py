"""Google Apps Script client for the form-update function."""

import json
from pathlib import Path
from typing import Any

import structlog
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build

from ..config import GoogleConfig
from ..exceptions import FormTriggerError
from .sheets import GOOGLE_ERRORS

SCRIPT_SCOPES = [
    "https://www.googleapis.com/auth/script.projects",
    "https://www.googleapis.com/auth/forms",
    "https://www.googleapis.com/auth/spreadsheets",
]
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
SCRIPT_FUNCTION = "main"


def _read_json(path: Path) -> dict[str, Any]:
    obj = json.loads(path.read_text())
    if not isinstance(obj, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return obj


def load_user_credentials(client_file: Path, token_file: Path) -> Credentials:
    """Build user credentials from an OAuth client file and a stored token.

    The client file is what the Google Cloud console downloads (a JSON
    object with an ``installed`` or ``web`` section).  The token file may
    name the access token either ``access_token`` or ``token``; its
    refresh token, if any, is used when the access token has expired.
    """
    client = _read_json(client_file)
    section = client.get("installed") or client.get("web") or client
    if not isinstance(section, dict):
        raise ValueError(f"{client_file} is not an OAuth client file")
    token = _read_json(token_file)
    access_token = token.get("access_token") or token.get("token")
    if not access_token and not token.get("refresh_token"):
        raise ValueError(
            f"{token_file} holds neither an access nor a refresh token"
        )
    return Credentials(
        token=access_token,
        refresh_token=token.get("refresh_token"),
        client_id=section.get("client_id"),
        client_secret=section.get("client_secret"),
        token_uri=section.get("token_uri", DEFAULT_TOKEN_URI),
        scopes=SCRIPT_SCOPES,
    )


class AppsScriptClient:
    """Run the Apps Script function that refreshes the image form.

    What the function does with the sheet is up to the script; from here
    it is an opaque remote call that either succeeds or fails.
    """

    def __init__(
        self, cfg: GoogleConfig, service: Resource | None = None
    ) -> None:
        self._logger = structlog.get_logger(__name__)
        self._credentials = cfg.credentials
        self._token = cfg.token
        self._script_id = cfg.form_id
        self._service = service

    def _build_service(self) -> Resource:
        if self._service is not None:
            return self._service
        if self._credentials is None or self._token is None:
            raise FormTriggerError("No Google OAuth credentials configured")
        try:
            credentials = load_user_credentials(
                self._credentials, self._token
            )
            return build(
                "script", "v1", credentials=credentials, cache_discovery=False
            )
        except GOOGLE_ERRORS as exc:
            raise FormTriggerError(
                f"Unable to retrieve Google Apps Script client: {exc}"
            ) from exc

    def run_main(self) -> dict[str, Any]:
        """Run the script's ``main`` function and return the operation."""
        service = self._build_service()
        body = {"function": SCRIPT_FUNCTION}
        self._logger.debug(
            f"Running {SCRIPT_FUNCTION}()", script_id=self._script_id
        )
        try:
            operation = (
                service.scripts()
                .run(scriptId=self._script_id, body=body)
                .execute()
            )
        except GOOGLE_ERRORS as exc:
            raise FormTriggerError(
                f"Unable to run script function: {exc}"
            ) from exc
        # The call itself can succeed while the script raised.
        if "error" in operation:
            details = operation["error"].get("details") or [{}]
            message = details[0].get("errorMessage", operation["error"])
            raise FormTriggerError(f"Script function failed: {message}")
        return operation
