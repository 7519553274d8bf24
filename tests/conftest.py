"""Test fixtures for the image set synchronizer."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
from pydantic import HttpUrl

from imageset_sync.config import ClusterConfig, GoogleConfig, SyncConfig
from imageset_sync.factory import Factory

IMAGE_SOURCE = (
    "https://quay.io/api/v1/repository/openshift-release-dev/ocp-release/tag/"
)


@pytest.fixture
def support_dir() -> Path:
    """Directory holding sample registry documents and credentials."""
    return Path(__file__).parent / "support"


@pytest.fixture
def registry_document(support_dir: Path) -> bytes:
    """Raw registry tag listing with images for several architectures."""
    return (support_dir / "registry.json").read_bytes()


@pytest.fixture
def sync_cfg(support_dir: Path) -> SyncConfig:
    """Config with every step enabled."""
    return SyncConfig(
        image_source=HttpUrl(IMAGE_SOURCE),
        architecture="x86_64",
        google=GoogleConfig(
            service_account=Path("/etc/imageset-sync/service-account.json"),
            sheet_id="1AbCdEfGhIjKlMnOpQrStUvWxYz0123456789",
            credentials=support_dir / "credentials.json",
            token=support_dir / "token.json",
            form_id="AKfycbx0123456789abcdef",
        ),
        cluster=ClusterConfig(
            enabled=True,
            kubeconfig=Path("/etc/imageset-sync/kubeconfig"),
        ),
        debug=True,
    )


@pytest.fixture
def registry_requests() -> list[httpx.Request]:
    """Requests seen by the mock image source."""
    return []


@pytest.fixture
def http_client(
    registry_document: bytes, registry_requests: list[httpx.Request]
) -> Iterator[httpx.Client]:
    """HTTP client whose image source serves the sample registry document."""

    def handler(request: httpx.Request) -> httpx.Response:
        registry_requests.append(request)
        return httpx.Response(200, content=registry_document)

    with httpx.Client(transport=httpx.MockTransport(handler)) as c:
        yield c


@pytest.fixture
def sheets_service() -> MagicMock:
    """Stand-in for the Google Sheets API resource."""
    service = MagicMock()
    values = service.spreadsheets.return_value.values.return_value
    values.batchUpdate.return_value.execute.return_value = {
        "totalUpdatedRows": 4
    }
    spreadsheets = service.spreadsheets.return_value
    spreadsheets.batchUpdate.return_value.execute.return_value = {
        "replies": [{}]
    }
    return service


@pytest.fixture
def script_service() -> MagicMock:
    """Stand-in for the Google Apps Script API resource."""
    service = MagicMock()
    service.scripts.return_value.run.return_value.execute.return_value = {
        "done": True,
        "response": {"result": None},
    }
    return service


@pytest.fixture
def cluster_api() -> MagicMock:
    """Stand-in for the Kubernetes custom objects API, with one image set
    already present.
    """
    api = MagicMock()
    api.list_cluster_custom_object.return_value = {
        "items": [{"metadata": {"name": "img4.14.1-x86-64-appsub"}}]
    }
    return api


@pytest.fixture
def factory(
    sync_cfg: SyncConfig,
    http_client: httpx.Client,
    sheets_service: MagicMock,
    script_service: MagicMock,
    cluster_api: MagicMock,
) -> Factory:
    """Factory whose remote services are all mocked."""
    return Factory(
        sync_cfg,
        http_client=http_client,
        sheets_service=sheets_service,
        script_service=script_service,
        cluster_api=cluster_api,
    )
