"""Structural record models produced by the parser."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ChapterIntro(BaseModel):
    """The title and introductory prose of a chapter."""

    model_config = ConfigDict(frozen=True)

    record_type: Literal["chapter_intro"] = "chapter_intro"
    chapter_number: int = Field(ge=1)
    title: str = ""
    body: str = ""


class Verse(BaseModel):
    """A numbered verse with its original text, translation and commentary."""

    model_config = ConfigDict(frozen=True)

    record_type: Literal["verse"] = "verse"
    chapter_number: int = Field(ge=1)
    verse_number: int = Field(ge=1)
    original_text: str = ""
    translation: str = ""
    commentary: str = ""

    @property
    def has_retrievable_content(self) -> bool:
        return bool(self.translation.strip() or self.commentary.strip())


class ContentBlock(BaseModel):
    """A fixed-size window of text from an unrecognized document format."""

    model_config = ConfigDict(frozen=True)

    record_type: Literal["content"] = "content"
    chapter_number: int = Field(default=1, ge=1)
    index: int = Field(ge=0)
    text: str


StructuralRecord = Annotated[
    Union[ChapterIntro, Verse, ContentBlock],
    Field(discriminator="record_type"),
]
