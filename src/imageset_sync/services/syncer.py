"""Publishes registry images to Google Sheets, Forms, and the cluster."""

import logging
from pathlib import Path

import structlog

from ..config import SyncConfig
from ..factory import Factory
from ..models.image import ImageRecord, ImageTable, image_table
from ..models.sync_step import SyncStep


class ImageSetSyncer:
    """Runs the synchronization pipeline for one configuration.

    Steps run in order: list images, update the sheet, sort the sheet,
    trigger the form update, and (if enabled) create ClusterImageSets.
    Any step that fails raises a `~imageset_sync.exceptions.SyncError` and
    nothing after it runs.
    """

    def __init__(
        self, cfg: SyncConfig, factory: Factory | None = None
    ) -> None:
        # Establish debugging and dry-run first.
        self._debug = cfg.debug
        self._dry_run = cfg.dry_run

        log_level = logging.DEBUG if self._debug else logging.INFO
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(log_level)
        )
        self._logger = structlog.get_logger(__name__)
        self._logger.debug("Initialized logging")

        self._config = cfg
        self._factory = factory or Factory(cfg)
        self._input_file = cfg.input_file
        self.images: list[ImageRecord] | None = None
        self.created: list[str] = []

    @property
    def table(self) -> ImageTable:
        """Rows to publish: the header followed by one row per image."""
        return image_table(self.images or [])

    def populate(self) -> None:
        """List images from the image source (or the input file)."""
        registry = self._factory.create_registry_client()
        if self._input_file:
            self.images = registry.load_images(self._input_file)
        else:
            self.images = registry.scan_registry()
        self._logger.info(
            f"Found {len(self.images)} images",
            architecture=self._config.architecture,
        )

    def update_sheet(self) -> None:
        if not self._ready(SyncStep.SHEET):
            return
        rows = self.table
        if self._dry_run:
            self._logger.info(
                f"Updated Google Sheet with {len(rows)} rows (not really)"
            )
            return
        self._factory.create_sheets_client().update_values(rows)
        self._logger.info("Updated Google Sheet successfully", rows=len(rows))

    def sort_sheet(self) -> None:
        if not self._ready(SyncStep.SORT):
            return
        if self._dry_run:
            self._logger.info("Sorted Google Sheet (not really)")
            return
        self._factory.create_sheets_client().sort_rows()
        self._logger.info("Sorted Google Sheet successfully")

    def trigger_form(self) -> None:
        if not self._ready(SyncStep.FORM):
            return
        if self._dry_run:
            self._logger.info("Updated Google Form (not really)")
            return
        self._factory.create_script_client().run_main()
        self._logger.info("Updated Google Form successfully")

    def sync_cluster(self) -> None:
        if not self._ready(SyncStep.CLUSTER):
            return
        cluster = self._factory.create_cluster_client()
        self.created = cluster.sync(self.images or [], dry_run=self._dry_run)
        self._logger.info(
            "Updated ClusterImageSets successfully", created=len(self.created)
        )

    def run(self) -> None:
        """Run every configured step, stopping at the first failure."""
        self.populate()
        self.update_sheet()
        self.sort_sheet()
        self.trigger_form()
        self.sync_cluster()

    def dump(self, outputfile: Path) -> None:
        """Write the listed images to a JSON file."""
        if not self._ready(SyncStep.IMAGES):
            return
        registry = self._factory.create_registry_client()
        registry.dump_images(outputfile, self.images or [])
        self._logger.debug(f"Wrote images to {outputfile}")

    def report(self) -> None:
        """Print the image table that would be published."""
        if self.images is None:
            self._logger.warning("No images have been listed.")
            return
        rows = self.table
        widths = [max(len(r[i]) for r in rows) for i in range(len(rows[0]))]
        headline = f"Images from {self._source_name()}:"
        print(headline)
        print("-" * len(headline))
        for row in rows:
            print("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())
        print("\n")

    def _source_name(self) -> str:
        if self._input_file:
            return str(self._input_file)
        return str(self._config.image_source)

    def _ready(self, step: SyncStep) -> bool:
        if not self._config.runs(step):
            self._logger.debug(f"Skipping step '{step.value}'")
            return False
        if self.images is None:
            self._logger.warning(
                "No images have been listed and thus cannot be published."
            )
            return False
        return True
