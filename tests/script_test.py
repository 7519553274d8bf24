"""Tests for the Apps Script client."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import httplib2
import pytest

from imageset_sync.config import SyncConfig
from imageset_sync.exceptions import FormTriggerError
from imageset_sync.storage.script import (
    SCRIPT_SCOPES,
    AppsScriptClient,
    load_user_credentials,
)


def test_run_main(sync_cfg: SyncConfig, script_service: MagicMock) -> None:
    """Test that the script's main function is run by ID."""
    client = AppsScriptClient(sync_cfg.google, service=script_service)
    operation = client.run_main()
    assert operation["done"] is True
    script_service.scripts.return_value.run.assert_called_once_with(
        scriptId="AKfycbx0123456789abcdef", body={"function": "main"}
    )


def test_script_error(sync_cfg: SyncConfig, script_service: MagicMock) -> None:
    """Test that an exception raised inside the script is a failure."""
    run = script_service.scripts.return_value.run.return_value
    run.execute.return_value = {
        "done": True,
        "error": {
            "code": 3,
            "message": "ScriptError",
            "details": [
                {
                    "errorMessage": "Form not found",
                    "errorType": "Exception",
                }
            ],
        },
    }
    client = AppsScriptClient(sync_cfg.google, service=script_service)
    with pytest.raises(FormTriggerError) as excinfo:
        client.run_main()
    assert "Form not found" in str(excinfo.value)


def test_load_user_credentials(support_dir: Path) -> None:
    """Test building credentials from a client file and a stored token."""
    creds = load_user_credentials(
        support_dir / "credentials.json", support_dir / "token.json"
    )
    assert creds.token == "ya29.not-a-real-token"
    assert creds.refresh_token == "1//not-a-real-refresh-token"
    assert creds.client_id == "1234567890-abcdefg.apps.googleusercontent.com"
    assert creds.token_uri == "https://oauth2.googleapis.com/token"
    assert creds.scopes == SCRIPT_SCOPES


def test_load_user_credentials_token_key(
    support_dir: Path, tmp_path: Path
) -> None:
    """Test that an authorized-user style token file is accepted."""
    token_file = tmp_path / "token.json"
    token_file.write_text(json.dumps({"token": "ya29.other"}))
    creds = load_user_credentials(support_dir / "credentials.json", token_file)
    assert creds.token == "ya29.other"
    assert creds.refresh_token is None


def test_unusable_token(sync_cfg: SyncConfig, tmp_path: Path) -> None:
    """Test that a token file without any token fails the form step."""
    token_file = tmp_path / "token.json"
    token_file.write_text(json.dumps({"token_type": "Bearer"}))
    google = sync_cfg.google.model_copy(update={"token": token_file})
    client = AppsScriptClient(google)
    with pytest.raises(FormTriggerError):
        client.run_main()


def test_script_unreachable(
    sync_cfg: SyncConfig, script_service: MagicMock
) -> None:
    """Test that an unreachable Apps Script API fails the form step."""
    run = script_service.scripts.return_value.run.return_value
    run.execute.side_effect = httplib2.ServerNotFoundError(
        "Unable to find the server at script.googleapis.com"
    )
    client = AppsScriptClient(sync_cfg.google, service=script_service)
    with pytest.raises(FormTriggerError):
        client.run_main()


def test_malformed_client_file(
    support_dir: Path, sync_cfg: SyncConfig, tmp_path: Path
) -> None:
    """Test that a client file whose section is not an object fails."""
    client_file = tmp_path / "credentials.json"
    client_file.write_text(json.dumps({"installed": "x"}))
    with pytest.raises(ValueError, match="OAuth client"):
        load_user_credentials(client_file, support_dir / "token.json")

    google = sync_cfg.google.model_copy(update={"credentials": client_file})
    with pytest.raises(FormTriggerError):
        AppsScriptClient(google).run_main()
