"""Node data model: the unit of retrieval."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(str, Enum):
    CHAPTER_INTRO = "chapter_intro"
    VERSE_ORIGINAL = "verse_original"
    VERSE_TRANSLATION = "verse_translation"
    VERSE_COMMENTARY = "verse_commentary"
    COMMENTARY_FRAGMENT = "commentary_fragment"
    GENERIC = "generic"


class NodeMetadata(BaseModel):
    """Location and content kind of a node."""

    model_config = ConfigDict(frozen=True)

    chapter_number: int = Field(ge=1)
    verse_number: int | None = None
    kind: NodeKind
    chunk_index: int | None = None
    chunk_count: int | None = None


class Node(BaseModel):
    """A single retrievable text unit with a stable identifier."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str  # display-ready, includes the location prefix
    metadata: NodeMetadata
