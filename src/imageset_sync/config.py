"""Configuration for the image set synchronizer."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any, Self

import yaml
from pydantic import (
    BeforeValidator,
    Field,
    HttpUrl,
    model_validator,
)
from safir.pydantic import CamelCaseModel, to_camel_case

from .models.image import DEFAULT_ARCHITECTURE
from .models.sync_step import SyncStep

DEFAULT_RELEASE_IMAGE_REPOSITORY = "quay.io/openshift-release-dev/ocp-release"


def _empty_str_is_none(inp: Any) -> Any:
    if isinstance(inp, str) and inp == "":
        return None
    return inp


def _merge(
    data: dict[str, Any], overrides: dict[str, Any]
) -> dict[str, Any]:
    # Overrides use field names; drop any camelCase spelling of the same key
    # so that the override is the value that gets validated.
    merged = dict(data)
    for key, value in overrides.items():
        camel = to_camel_case(key)
        existing = merged.pop(camel, None) if camel != key else None
        existing = merged.get(key, existing)
        if isinstance(value, dict) and isinstance(existing, dict):
            merged[key] = _merge(existing, value)
        else:
            merged[key] = value
    return merged


class GoogleConfig(CamelCaseModel):
    """Where the image table goes, and how to reach the Apps Script that
    copies it into the form.
    """

    service_account: Annotated[
        Path | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Service account",
            description=(
                "Path to service account credentials with access to the "
                "spreadsheet."
            ),
            examples=["/etc/imageset-sync/service-account.json"],
        ),
    ] = None

    sheet_id: Annotated[
        str | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Sheet ID",
            description="Spreadsheet ID, from the spreadsheet URL.",
        ),
    ] = None

    sheet_name: Annotated[
        str,
        Field(
            title="Sheet name",
            description="Name of the sheet (tab) to write image rows into.",
            examples=["imageSets"],
        ),
    ] = "imageSets"

    sheet_grid_id: Annotated[
        int,
        Field(
            title="Sheet grid ID",
            description="Numeric ID of the sheet (tab) to sort.",
        ),
    ] = 0

    credentials: Annotated[
        Path | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="OAuth client credentials",
            description=(
                "Path to OAuth client credentials used to run the Apps "
                "Script."
            ),
        ),
    ] = None

    token: Annotated[
        Path | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="OAuth token",
            description=(
                "Path to a stored OAuth token authorized for the Apps Script."
            ),
        ),
    ] = None

    form_id: Annotated[
        str | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Form script ID",
            description=(
                "ID of the Apps Script project that updates the Google Form."
            ),
        ),
    ] = None


class ClusterConfig(CamelCaseModel):
    """Optional creation of ClusterImageSets for each discovered image."""

    enabled: Annotated[
        bool,
        Field(
            title="Enabled",
            description="Create ClusterImageSets for discovered images.",
        ),
    ] = False

    kubeconfig: Annotated[
        Path | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Kubeconfig",
            description=(
                "Path to kubeconfig for the target cluster.  If unset, "
                "in-cluster configuration is used."
            ),
        ),
    ] = None

    release_image_repository: Annotated[
        str,
        Field(
            title="Release image repository",
            description=(
                "Repository that ClusterImageSet release images point into."
            ),
            examples=[DEFAULT_RELEASE_IMAGE_REPOSITORY],
        ),
    ] = DEFAULT_RELEASE_IMAGE_REPOSITORY


class SyncConfig(CamelCaseModel):
    """Configuration for one synchronization run."""

    image_source: Annotated[
        HttpUrl | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Image source",
            description="URL of the registry tag listing.",
            examples=[
                HttpUrl(
                    "https://quay.io/api/v1/repository/openshift-release-dev"
                    "/ocp-release/tag/"
                )
            ],
        ),
    ] = None

    architecture: Annotated[
        str,
        Field(
            title="Architecture",
            description=(
                "Marker that tag names must contain to be published; it is "
                "stripped from the published image name."
            ),
            examples=[DEFAULT_ARCHITECTURE],
            min_length=1,
        ),
    ] = DEFAULT_ARCHITECTURE

    google: Annotated[
        GoogleConfig,
        Field(
            default_factory=GoogleConfig,
            title="Google",
            description="Google Sheets and Apps Script settings.",
        ),
    ]

    cluster: Annotated[
        ClusterConfig,
        Field(
            default_factory=ClusterConfig,
            title="Cluster",
            description="ClusterImageSet creation settings.",
        ),
    ]

    skip_steps: Annotated[
        set[SyncStep],
        Field(
            default_factory=set,
            title="Skip steps",
            description="Pipeline steps not to run.",
            examples=[["form", "cluster"]],
        ),
    ]

    dry_run: Annotated[
        bool,
        Field(
            title="Dry run",
            description="Do not write to the spreadsheet, form, or cluster.",
        ),
    ] = False

    debug: Annotated[
        bool,
        Field(
            title="Debug",
            description="Much more verbose logging.",
        ),
    ] = False

    input_file: Annotated[
        Path | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Input file",
            description=(
                "If supplied, read the registry document from this file "
                "rather than querying the image source."
            ),
        ),
    ] = None

    @model_validator(mode="after")
    def _check_required_settings(self) -> Self:
        if SyncStep.IMAGES in self.skip_steps:
            raise ValueError("The images step cannot be skipped")
        if self.image_source is None and self.input_file is None:
            raise ValueError("One of image_source or input_file is required")
        missing: list[str] = []
        if self.runs(SyncStep.SHEET) or self.runs(SyncStep.SORT):
            if self.google.service_account is None:
                missing.append("google.service_account")
            if self.google.sheet_id is None:
                missing.append("google.sheet_id")
        if self.runs(SyncStep.FORM):
            if self.google.credentials is None:
                missing.append("google.credentials")
            if self.google.token is None:
                missing.append("google.token")
            if self.google.form_id is None:
                missing.append("google.form_id")
        if missing:
            raise ValueError(
                f"Missing required settings: {', '.join(missing)}"
            )
        return self

    def runs(self, step: SyncStep) -> bool:
        """Whether a pipeline step is part of this run."""
        if step in self.skip_steps:
            return False
        if step == SyncStep.CLUSTER:
            return self.cluster.enabled
        return True

    @classmethod
    def from_file(
        cls, path: Path, overrides: dict[str, Any] | None = None
    ) -> Self:
        data = yaml.safe_load(path.read_text()) or {}
        if isinstance(data, dict):
            data = _merge(data, overrides or {})
        return cls.model_validate(data)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Build configuration from the process environment.

        ClusterImageSet creation is switched on by the presence of
        ``OPENSHIFT_KUBECONFIG``.
        """
        env = os.environ if environ is None else environ
        kubeconfig = env.get("OPENSHIFT_KUBECONFIG")
        data: dict[str, Any] = {
            "image_source": env.get("IMAGE_SOURCE"),
            "google": {
                "service_account": env.get("GOOGLE_SERVICE_ACCOUNT"),
                "sheet_id": env.get("GOOGLE_SHEET_ID"),
                "credentials": env.get("GOOGLE_CREDENTIALS"),
                "token": env.get("GOOGLE_TOKEN"),
                "form_id": env.get("GOOGLE_FORM_ID"),
            },
            "cluster": {
                "enabled": bool(kubeconfig),
                "kubeconfig": kubeconfig,
            },
        }
        return cls.model_validate(_merge(data, overrides or {}))
