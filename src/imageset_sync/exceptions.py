"""Exceptions raised by the image set synchronizer."""

from .models.sync_step import SyncStep


class SyncError(Exception):
    """A pipeline step failed.  Every failure is fatal to the run.

    Subclasses set ``step`` to the pipeline step they report on.

    Parameters
    ----------
    message
        Description of the failure.
    """

    step: SyncStep = SyncStep.IMAGES

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.step.value}: {self.message}"


class ImageSourceError(SyncError):
    """The image source could not be queried."""

    step = SyncStep.IMAGES


class ImageDecodeError(SyncError):
    """The image source returned a document we cannot interpret."""

    step = SyncStep.IMAGES


class SheetUpdateError(SyncError):
    """Writing image rows to the spreadsheet failed."""

    step = SyncStep.SHEET


class SheetSortError(SyncError):
    """Sorting the spreadsheet failed."""

    step = SyncStep.SORT


class FormTriggerError(SyncError):
    """Running the form-update Apps Script function failed."""

    step = SyncStep.FORM


class ClusterSyncError(SyncError):
    """Listing or creating ClusterImageSets failed."""

    step = SyncStep.CLUSTER
