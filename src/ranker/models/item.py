"""Rankable item models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ItemType(str, Enum):
    """Kind of entity being ranked, decided when the item is created."""

    SONG = "song"
    ALBUM = "album"
    ARTIST = "artist"


class RankableItem(BaseModel):
    """Anything that can be put in a matchup.

    The ranking core only relies on ``item_id``; the other fields are carried
    through for display.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str = Field(min_length=1, description="Stable identity, e.g. a library persistent ID")
    title: str = Field(description="Display title")
    artist: str = Field(default="Unknown Artist", description="Display artist")
    item_type: ItemType = Field(description="song, album or artist")


class RankingContext(str, Enum):
    """Scopes that ratings are partitioned by."""

    ARTIST_ALBUMS = "artist_albums"
    ARTIST_SONGS = "artist_songs"
    ALBUM_SONGS = "album_songs"
    ALL_SONGS = "global_songs"

    def context_key(self, scope_id: str | None = None) -> str:
        """Build the opaque context key, e.g. ``album_songs:1234``."""
        if self is RankingContext.ALL_SONGS:
            return self.value
        return f"{self.value}:{scope_id or ''}"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    RankingContext.ARTIST_ALBUMS: "Artist Albums",
    RankingContext.ARTIST_SONGS: "Artist Songs",
    RankingContext.ALBUM_SONGS: "Album Songs",
    RankingContext.ALL_SONGS: "All Songs",
}
