"""Client for the registry tag listing that we publish images from."""

import json
from pathlib import Path

import httpx
import structlog

from ..config import SyncConfig
from ..exceptions import ImageSourceError
from ..models.image import ImageRecord, JSONRecord, parse_images


class RegistryClient:
    """Fetch a registry's tag metadata and turn it into image records.

    Each scan is one synchronous request; the tag listing is a single
    unpaginated document.
    """

    def __init__(
        self, cfg: SyncConfig, http_client: httpx.Client | None = None
    ) -> None:
        self._logger = structlog.get_logger(__name__)
        self._url = str(cfg.image_source) if cfg.image_source else None
        self._architecture = cfg.architecture
        self._http_client = http_client or httpx.Client()

    def scan_registry(self) -> list[ImageRecord]:
        """Query the image source and return the matching images."""
        if self._url is None:
            raise ImageSourceError("No image source configured")
        self._logger.debug(f"Requesting image tags from {self._url}")
        try:
            r = self._http_client.get(self._url)
            r.raise_for_status()
        except httpx.HTTPError as exc:
            raise ImageSourceError(
                f"Unable to query image source API: {exc}"
            ) from exc
        images = parse_images(r.content, self._architecture)
        self._logger.debug(
            f"Found {len(images)} {self._architecture} images",
            url=self._url,
        )
        return images

    def load_images(self, inputfile: Path) -> list[ImageRecord]:
        """Read a registry document from a file instead of the network."""
        try:
            raw = inputfile.read_bytes()
        except OSError as exc:
            raise ImageSourceError(
                f"Unable to read input file {inputfile}: {exc}"
            ) from exc
        images = parse_images(raw, self._architecture)
        count = len(images)
        self._logger.debug(
            f"Ingested {count} image{'s' if count != 1 else ''}",
            input_file=str(inputfile),
        )
        return images

    def dump_images(
        self, outputfile: Path, images: list[ImageRecord]
    ) -> None:
        """Write JSON of extracted image records."""
        objs: list[JSONRecord] = [x.to_dict() for x in images]
        dd = {
            "metadata": {"architecture": self._architecture},
            "data": objs,
        }
        try:
            outputfile.write_text(json.dumps(dd, indent=2))
        except OSError as exc:
            raise ImageSourceError(
                f"Unable to write dump file {outputfile}: {exc}"
            ) from exc

    def close(self) -> None:
        self._http_client.close()
