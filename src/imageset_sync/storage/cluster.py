"""Kubernetes client for ClusterImageSet custom resources."""

import re
from typing import Any

import structlog
from kubernetes import client, config
from kubernetes.client import ApiException
from kubernetes.config import ConfigException
from urllib3.exceptions import HTTPError

from ..config import ClusterConfig
from ..exceptions import ClusterSyncError
from ..models.image import ImageRecord

GROUP = "hive.openshift.io"
VERSION = "v1"
PLURAL = "clusterimagesets"
KIND = "ClusterImageSet"

KUBERNETES_ERRORS = (ApiException, HTTPError)

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9.-]+")


def load_api(kubeconfig: str | None) -> client.CustomObjectsApi:
    """Load cluster configuration and return a custom objects client.

    With no kubeconfig, fall back to the in-cluster service account.
    """
    try:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
        else:
            config.load_incluster_config()
    except (ConfigException, OSError) as exc:
        raise ClusterSyncError(
            f"The kubeconfig could not be loaded: {exc}"
        ) from exc
    return client.CustomObjectsApi()


class ClusterImageSetClient:
    """List and create ClusterImageSets for published images.

    Parameters
    ----------
    cfg
        Cluster settings.
    architecture
        Architecture marker; release images are tagged ``<name>-<arch>``.
    api
        Prebuilt custom objects client.  If not supplied, one is created
        from ``cfg.kubeconfig``.
    """

    def __init__(
        self,
        cfg: ClusterConfig,
        architecture: str,
        api: client.CustomObjectsApi | None = None,
    ) -> None:
        self._logger = structlog.get_logger(__name__)
        self._kubeconfig = str(cfg.kubeconfig) if cfg.kubeconfig else None
        self._repository = cfg.release_image_repository
        self._architecture = architecture
        self._api = api

    def _get_api(self) -> client.CustomObjectsApi:
        if self._api is None:
            self._api = load_api(self._kubeconfig)
        return self._api

    def resource_name(self, image: ImageRecord) -> str:
        """Name of the ClusterImageSet for an image.

        Names must be valid DNS subdomains, so anything else is folded
        into ``-``.
        """
        raw = f"img{image.name}-{self._architecture}-appsub".lower()
        return _INVALID_NAME_CHARS.sub("-", raw).strip("-.")

    def release_image(self, image: ImageRecord) -> str:
        return f"{self._repository}:{image.name}-{self._architecture}"

    def manifest(self, image: ImageRecord) -> dict[str, Any]:
        return {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": KIND,
            "metadata": {"name": self.resource_name(image)},
            "spec": {"releaseImage": self.release_image(image)},
        }

    def list_names(self) -> set[str]:
        """Return names of all existing ClusterImageSets."""
        api = self._get_api()
        try:
            resp = api.list_cluster_custom_object(
                group=GROUP, version=VERSION, plural=PLURAL
            )
        except KUBERNETES_ERRORS as exc:
            raise ClusterSyncError(f"Unable to list {PLURAL}: {exc}") from exc
        return {x["metadata"]["name"] for x in resp.get("items", [])}

    def sync(
        self, images: list[ImageRecord], *, dry_run: bool = False
    ) -> list[str]:
        """Create a ClusterImageSet for every image that lacks one.

        Returns
        -------
        list of str
            Names of the resources created (or, for a dry run, that would
            have been created).
        """
        existing = self.list_names()
        dry = " (not really)" if dry_run else ""
        created: list[str] = []
        for image in images:
            name = self.resource_name(image)
            if name in existing or name in created:
                self._logger.debug(f"{KIND} {name} already exists")
                continue
            if not dry_run:
                self._create(self.manifest(image))
            self._logger.info(f"Created {KIND} {name} for {image}{dry}")
            created.append(name)
        self._logger.debug(
            f"Created {len(created)} {PLURAL}{dry}", existing=len(existing)
        )
        return created

    def _create(self, body: dict[str, Any]) -> None:
        api = self._get_api()
        try:
            api.create_cluster_custom_object(
                group=GROUP, version=VERSION, plural=PLURAL, body=body
            )
        except KUBERNETES_ERRORS as exc:
            raise ClusterSyncError(
                f"Unable to create {KIND} {body['metadata']['name']}: {exc}"
            ) from exc
