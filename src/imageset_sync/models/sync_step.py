from enum import Enum


class SyncStep(Enum):
    """Each step of the synchronization pipeline, in execution order.

    The values are what the command line accepts for ``--skip``.
    """

    IMAGES = "images"
    SHEET = "sheet"
    SORT = "sort"
    FORM = "form"
    CLUSTER = "cluster"
