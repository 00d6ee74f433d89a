"""Per-collection song statistics."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from showtracker.models.show import Show


@dataclass
class SongHearing:
    """One time a song was heard live."""

    date: str
    artist: str
    venue: str
    rating: Optional[int] = None


@dataclass
class SongStat:
    name: str
    count: int = 0
    avg_rating: Optional[float] = None
    shows: list[SongHearing] = field(default_factory=list)


def song_stats(shows: Iterable[Show]) -> list[SongStat]:
    """Count how often each song was heard across a collection.

    Songs are grouped by exact name. The average rating covers only the
    hearings that were rated and is rounded to one decimal. Results are
    sorted by count, most heard first; ties keep first-heard order.
    """
    stats: dict[str, SongStat] = {}
    ratings: dict[str, list[int]] = {}

    for show in shows:
        for song in show.setlist:
            stat = stats.setdefault(song.name, SongStat(name=song.name))
            stat.count += 1
            if song.rating:
                ratings.setdefault(song.name, []).append(song.rating)
            stat.shows.append(
                SongHearing(date=show.date, artist=show.artist, venue=show.venue, rating=song.rating)
            )

    for name, values in ratings.items():
        stats[name].avg_rating = round(sum(values) / len(values), 1)

    return sorted(stats.values(), key=lambda stat: stat.count, reverse=True)


def filter_shows(shows: Iterable[Show], term: str | None) -> list[Show]:
    """Shows whose artist or venue contains ``term``, ignoring case."""
    needle = (term or "").strip().casefold()
    if not needle:
        return list(shows)
    return [
        show
        for show in shows
        if needle in show.artist.casefold() or needle in show.venue.casefold()
    ]


@dataclass
class CollectionSummary:
    total_shows: int
    total_songs: int
    top_songs: list[SongStat]
    recent_shows: list[Show]
    share_text: str


def collection_summary(
    shows: Iterable[Show],
    top: int = 10,
    recent: int = 5,
) -> CollectionSummary:
    """Totals, most heard songs and latest additions, for sharing a collection.

    ``recent_shows`` are the most recently added shows, newest first.
    """
    shows = list(shows)
    top_songs = song_stats(shows)[:top]
    total_songs = sum(len(show.setlist) for show in shows)

    lines = ["My Concert Collection", "", f"{len(shows)} shows, {total_songs} songs"]
    if top_songs:
        lines += ["", "Top Songs:"]
        lines += [
            f"{rank}. {stat.name} ({stat.count}x)"
            for rank, stat in enumerate(top_songs[:5], start=1)
        ]

    return CollectionSummary(
        total_shows=len(shows),
        total_songs=total_songs,
        top_songs=top_songs,
        recent_shows=sorted(shows, key=lambda show: show.created_at, reverse=True)[: max(recent, 0)],
        share_text="\n".join(lines),
    )
