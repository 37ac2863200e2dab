"""
Pydantic schemas for the values the extractor hands to its callers.

FeedPost: one entry of a listing page, immutable once built
Feed:     ordered posts + the link to the next page

Field names are snake_case in Python; the JSON projection uses the camelCase
aliases (``commentCount``, ``nextPageLink``...) so the output matches what the
feed's JSON consumers expect.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FeedPostType(str, Enum):
    """Content classification of a post, inferred from its link."""
    TEXT = "text"
    LINK = "link"
    IMAGE = "image"
    VIDEO = "video"
    GALLERY = "gallery"

    def __str__(self) -> str:
        return self.value


class FeedPost(BaseModel):
    """A single post read off a listing page."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""                                   # "t3_..." fullname
    type: FeedPostType = FeedPostType.LINK         # Unclassified default
    title: str = ""
    op: str = ""                                   # Author handle
    subreddit: str = ""
    timestamp: Optional[datetime] = None           # UTC; None when missing/malformed
    score: int = 0                                 # May be negative
    comment_count: int = Field(default=0, ge=0, alias="commentCount")
    thumbnail_link: str = Field(default="", alias="thumbnailLink")
    post_link: str = Field(default="", alias="postLink")
    comments_link: str = Field(default="", alias="commentsLink")
    is_spoiler: bool = Field(default=False, alias="isSpoiler")
    is_nsfw: bool = Field(default=False, alias="isNSFW")


class Feed(BaseModel):
    """A page of posts in site order plus the continuation link."""
    model_config = ConfigDict(populate_by_name=True)

    posts: list[FeedPost] = Field(default_factory=list)
    # None when the page had no posts: there is no last id to continue from
    next_page_link: Optional[str] = Field(default=None, alias="nextPageLink")

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize with the camelCase field names."""
        return self.model_dump_json(by_alias=True, indent=indent)
