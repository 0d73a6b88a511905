from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class EntryReference(BaseModel):
    name: str
    url: str

    @property
    def entry_id(self) -> str:
        # ".../pokemon/25/" -> "25"
        return [p for p in self.url.split("/") if p][-1]


class Sprites(BaseModel):
    model_config = ConfigDict(frozen=True)

    front_default: Optional[str] = None
    official_artwork: Optional[str] = None

    @property
    def image_url(self) -> Optional[str]:
        return self.official_artwork or self.front_default


class Ability(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_hidden: bool = False


class Stat(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    base_stat: int


class CatalogEntry(BaseModel):
    """One catalog entry, mirrored verbatim from the upstream API.

    Height and weight are kept in upstream units (decimetres, hectograms).
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    url: Optional[str] = None
    sprites: Sprites = Field(default_factory=Sprites)
    types: List[str] = Field(default_factory=list)
    height: int = 0
    weight: int = 0
    abilities: List[Ability] = Field(default_factory=list)
    stats: List[Stat] = Field(default_factory=list)
    moves: List[str] = Field(default_factory=list)


class EntryDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry: CatalogEntry
    description: Optional[str] = None


class PaginatedEntries(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    items: List[CatalogEntry]
