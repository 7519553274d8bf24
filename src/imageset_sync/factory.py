"""Component factory."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import closing, contextmanager
from typing import Any, Self

import httpx
from googleapiclient.discovery import Resource
from kubernetes import client

from .config import SyncConfig
from .storage.cluster import ClusterImageSetClient
from .storage.registry import RegistryClient
from .storage.script import AppsScriptClient
from .storage.sheets import SheetsClient


class Factory:
    """Build synchronizer components.

    Any of the underlying API clients may be supplied ready-made, which is
    how the test suite substitutes mocks for Google and Kubernetes.

    Parameters
    ----------
    config
        Synchronizer configuration.
    http_client
        HTTP client for the image source.
    sheets_service
        Google Sheets API resource.
    script_service
        Google Apps Script API resource.
    cluster_api
        Kubernetes custom objects client.
    """

    @classmethod
    @contextmanager
    def standalone(
        cls, config: SyncConfig, **kwargs: Any
    ) -> Iterator[Self]:
        """Context manager for synchronizer components.

        Yields
        ------
        Factory
            Newly-created factory, closed on exit.
        """
        with closing(cls(config, **kwargs)) as factory:
            yield factory

    def __init__(
        self,
        config: SyncConfig,
        *,
        http_client: httpx.Client | None = None,
        sheets_service: Resource | None = None,
        script_service: Resource | None = None,
        cluster_api: client.CustomObjectsApi | None = None,
    ) -> None:
        self._config = config
        self._http_client = http_client
        self._sheets_service = sheets_service
        self._script_service = script_service
        self._cluster_api = cluster_api
        self._registry_client: RegistryClient | None = None

    def create_registry_client(self) -> RegistryClient:
        if self._registry_client is None:
            self._registry_client = RegistryClient(
                self._config, http_client=self._http_client
            )
        return self._registry_client

    def create_sheets_client(self) -> SheetsClient:
        return SheetsClient(self._config.google, service=self._sheets_service)

    def create_script_client(self) -> AppsScriptClient:
        return AppsScriptClient(
            self._config.google, service=self._script_service
        )

    def create_cluster_client(self) -> ClusterImageSetClient:
        return ClusterImageSetClient(
            self._config.cluster,
            self._config.architecture,
            api=self._cluster_api,
        )

    def close(self) -> None:
        if self._registry_client is not None:
            self._registry_client.close()
            self._registry_client = None
