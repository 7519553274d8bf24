"""Model for the image metadata we publish from a registry's tag listing."""

import json
from dataclasses import asdict, dataclass
from typing import Annotated, Any, Self

from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Strict,
    StrictInt,
    StrictStr,
    ValidationError,
)

from ..exceptions import ImageDecodeError

HEADER = ("imageId", "name", "manifestDigest", "size", "lastModified")
DEFAULT_ARCHITECTURE = "x86_64"

type ImageRow = list[str]
type ImageTable = list[ImageRow]
type JSONRecord = dict[str, str]

FiniteStrictFloat = Annotated[float, Strict(), AllowInfNan(False)]


class TagMetadata(BaseModel):
    """One entry of the registry's ``tags`` mapping.

    Only the fields we publish are declared; anything else the registry
    sends along is ignored.  Validation is strict, so a string where a
    number belongs (or vice versa) is an error rather than a coercion.
    """

    model_config = ConfigDict(extra="ignore")

    image_id: StrictStr
    name: StrictStr
    manifest_digest: StrictStr
    size: StrictInt | FiniteStrictFloat
    last_modified: StrictStr


class RegistryTags(BaseModel):
    """Top-level registry document: a mapping from tag name to metadata.

    Entries are only validated once selected, so tags for other
    architectures may have any shape.
    """

    model_config = ConfigDict(extra="ignore")

    tags: dict[str, Any]


def format_size(size: float) -> str:
    """Render a size as an integer string with no fractional part."""
    return f"{size:.0f}"


def strip_architecture(name: str, architecture: str) -> str:
    """Remove the architecture marker from a display name.

    Registry tag names carry it as a ``-<arch>`` suffix; if a bare marker
    is left anywhere after that, it goes too.
    """
    return name.replace(f"-{architecture}", "").replace(architecture, "")


@dataclass(frozen=True)
class ImageRecord:
    """One row of published image metadata."""

    image_id: str
    name: str
    manifest_digest: str
    size: str
    last_modified: str

    def __str__(self) -> str:
        dig = self.manifest_digest
        colon_pos = dig.find(":")
        if colon_pos > -1:
            dig = dig[1 + colon_pos :]
        if len(dig) > 8:
            dig = dig[:8] + "..."
        return f"[{self.name}] <{dig}>"

    def to_row(self) -> ImageRow:
        """Return the record in header column order."""
        return [
            self.image_id,
            self.name,
            self.manifest_digest,
            self.size,
            self.last_modified,
        ]

    def to_dict(self) -> JSONRecord:
        return asdict(self)

    @classmethod
    def from_metadata(cls, meta: TagMetadata, architecture: str) -> Self:
        return cls(
            image_id=meta.image_id,
            name=strip_architecture(meta.name, architecture),
            manifest_digest=meta.manifest_digest,
            size=format_size(meta.size),
            last_modified=meta.last_modified,
        )


def _select(
    registry_tags: RegistryTags, architecture: str
) -> list[ImageRecord]:
    # Dicts preserve insertion order, so records come out in the order the
    # registry listed them.
    images: list[ImageRecord] = []
    for key, obj in registry_tags.tags.items():
        if architecture not in key:
            continue
        try:
            meta = TagMetadata.model_validate(obj)
        except ValidationError as exc:
            raise ImageDecodeError(
                f"Bad metadata for tag {key}: {exc}"
            ) from exc
        images.append(ImageRecord.from_metadata(meta, architecture))
    return images


def extract_images(
    document: Any, architecture: str = DEFAULT_ARCHITECTURE
) -> list[ImageRecord]:
    """Filter an already-decoded registry document down to image records.

    Parameters
    ----------
    document
        Decoded JSON from the registry.
    architecture
        Marker that a tag key must contain to be selected.  It is stripped
        from the display name of each selected image.

    Returns
    -------
    list of ImageRecord
        Selected images, in registry order.

    Raises
    ------
    ImageDecodeError
        The document does not have the expected shape, or an entry is
        missing a field or has a field of the wrong type.
    """
    try:
        registry_tags = RegistryTags.model_validate(document)
    except ValidationError as exc:
        raise ImageDecodeError(
            f"Unexpected registry document: {exc}"
        ) from exc
    return _select(registry_tags, architecture)


def parse_images(
    raw: bytes | str, architecture: str = DEFAULT_ARCHITECTURE
) -> list[ImageRecord]:
    """Decode a raw registry response body and extract image records."""
    try:
        document = json.loads(raw)
    except ValueError as exc:
        raise ImageDecodeError(
            f"Registry response is not JSON: {exc}"
        ) from exc
    return extract_images(document, architecture)


def image_table(records: list[ImageRecord]) -> ImageTable:
    """Return the header row followed by one row per record."""
    table: ImageTable = [list(HEADER)]
    table.extend(x.to_row() for x in records)
    return table
