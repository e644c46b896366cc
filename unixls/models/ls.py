# unixls/models/ls.py - Pydantic models for directory listings
#
# Wire names (Name, Hash, Links, HasHeader, ...) are kept as aliases so JSON
# consumers see the same shape whether the listing was batched or streamed.

from enum import Enum, IntEnum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UnixfsType(IntEnum):
    """UnixFS data types, plus UNKNOWN for entries whose type was not resolved."""
    UNKNOWN = -1
    RAW = 0
    DIRECTORY = 1
    FILE = 2
    METADATA = 3
    SYMLINK = 4
    HAMT_SHARD = 5


class ObjectKind(str, Enum):
    """The four shapes an LsObject may take."""
    FULL = "full"
    HEADER = "header"
    LINKS = "links"
    FOOTER = "footer"


# (HasHeader, HasLinks, HasFooter) -> kind
_FACETS = {
    (True, True, True): ObjectKind.FULL,
    (True, False, False): ObjectKind.HEADER,
    (False, True, False): ObjectKind.LINKS,
    (False, False, True): ObjectKind.FOOTER,
}


class LsLink(BaseModel):
    """Printable data for a single link in a listing."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="Name", description="Entry name within its parent.")
    hash: str = Field(..., alias="Hash", description="String form of the entry's CID.")
    size: int = Field(0, alias="Size", ge=0, description="Size declared by the link, in bytes.")
    type: UnixfsType = Field(UnixfsType.UNKNOWN, alias="Type", description="Resolved UnixFS type, -1 if unknown.")

    @property
    def display_name(self) -> str:
        if self.type == UnixfsType.DIRECTORY:
            return self.name + "/"
        return self.name


class LsObject(BaseModel):
    """
    One element of LsOutput.

    Represents a whole directory, a directory header, one or more links, or the
    end of a directory. Use the factory classmethods rather than setting the
    facets by hand.
    """
    model_config = ConfigDict(populate_by_name=True)

    hash: str = Field("", alias="Hash", description="Path label of the listed reference (header only).")
    links: List[LsLink] = Field(default_factory=list, alias="Links")
    has_header: bool = Field(False, alias="HasHeader")
    has_links: bool = Field(False, alias="HasLinks")
    has_footer: bool = Field(False, alias="HasFooter")

    @model_validator(mode="after")
    def _check_facets(self) -> "LsObject":
        facets = (self.has_header, self.has_links, self.has_footer)
        if facets not in _FACETS:
            raise ValueError(f"invalid facet combination (header, links, footer) = {facets}")
        if not self.has_links and self.links:
            raise ValueError("links present on an object without the links facet")
        if not self.has_header and self.hash:
            raise ValueError("path label present on an object without the header facet")
        return self

    @property
    def kind(self) -> ObjectKind:
        return _FACETS[(self.has_header, self.has_links, self.has_footer)]

    # --- Factories ---

    @classmethod
    def full(cls, label: str, links: List[LsLink]) -> "LsObject":
        return cls(hash=label, links=links, has_header=True, has_links=True, has_footer=True)

    @classmethod
    def header(cls, label: str) -> "LsObject":
        return cls(hash=label, has_header=True)

    @classmethod
    def links_only(cls, links: List[LsLink]) -> "LsObject":
        return cls(links=links, has_links=True)

    @classmethod
    def footer(cls) -> "LsObject":
        return cls(has_footer=True)


class LsOutput(BaseModel):
    """A set of printable listing fragments, emitted together."""
    model_config = ConfigDict(populate_by_name=True)

    multiple_folders: bool = Field(False, alias="MultipleFolders", description="True iff more than one path was listed.")
    objects: List[LsObject] = Field(default_factory=list, alias="Objects")


class LsOptions(BaseModel):
    """Per-invocation listing options."""
    headers: bool = Field(False, description="Print table headers (Hash, Size, Name).")
    resolve_type: bool = Field(True, description="Resolve linked objects to find out their types.")
    stream: bool = Field(False, description="Stream directory entries as they are found.")
