"""Typed views of scrape provider output.

Apify returns loosely-shaped dicts; the scraping service maps them into
these models before anything else touches them.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.models.channel import Channel, ChannelHistory


class ScrapedItem(BaseModel):
    """One post as returned by the post scraper."""
    short_code: str = ""
    url: str = ""
    caption: str = ""
    owner_username: str = ""
    owner_full_name: str = ""
    like_count: int = 0
    comment_count: int = 0
    video_view_count: int = 0
    video_play_count: int = 0
    video_url: str | None = None
    display_url: str | None = None
    posted_at: datetime | None = None
    coauthors: list[str] = Field(default_factory=list)
    comments: list[str] = Field(default_factory=list)
    raw_data: dict[str, Any] | None = None


class ScrapedProfile(BaseModel):
    """Author profile counters as returned by the profile scraper."""
    username: str = ""
    full_name: str = ""
    followers_count: int = 0
    following_count: int = 0
    media_count: int = 0
    profile_pic_url: str = ""


class ScrapeResult(BaseModel):
    """Outcome of one ``fetch_and_update`` call.

    ``peer_error`` is set when the author sample or profile lookup failed;
    the primary item is still valid in that case.
    """
    primary: ScrapedItem
    peers: list[ScrapedItem] = Field(default_factory=list)
    profile: ScrapedProfile | None = None
    channel: Channel | None = None
    history: ChannelHistory | None = None
    peer_error: str | None = None
