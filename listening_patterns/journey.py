"""Track engagement badges across Spotify's top-track time ranges"""
import logging
from typing import Dict, List, Optional, Tuple

from listening_patterns.models.listening import TopTrack
from listening_patterns.models.summary import JourneyTrack
from listening_patterns.services.spotify import TIME_RANGES

logger = logging.getLogger(__name__)

EVERGREEN = 'evergreen'
ALL_TIME_FAVORITE = 'all_time_favorite'
FADING_OUT = 'fading_out'
NEW_OBSESSION = 'new_obsession'
SHORT_TERM = 'short_term'

# Display order, which is also the order the rules are tried in
BADGES = (EVERGREEN, ALL_TIME_FAVORITE, FADING_OUT, NEW_OBSESSION, SHORT_TERM)

FAVORITE_RANK = 10

BADGE_STYLES = {
    EVERGREEN: ("badge-warning", "Evergreen"),
    ALL_TIME_FAVORITE: ("badge-success", "All-Time Favorite"),
    NEW_OBSESSION: ("badge-success", "New Obsession"),
    FADING_OUT: ("badge-danger", "Fading Out"),
    SHORT_TERM: ("badge-info", "Short-Term Crush"),
}

TIME_RANGE_LABELS = {
    'long_term': "Past Year",
    'medium_term': "Past 6 Months",
    'short_term': "Past 4 Weeks",
}


def classify(ranks: Dict[str, int]) -> Optional[str]:
    """
    Pick exactly one badge from a track's 1-based rank per time range.

    Rules, first match wins:
    - evergreen: charted long-term and short-term
    - all_time_favorite: long-term rank within the top 10
    - fading_out: charted long- or medium-term but not short-term
    - new_obsession: charted short- and medium-term, never long-term
    - short_term: charted short-term only

    Spotify's medium-term list overlaps both neighbours, so evergreen only
    looks at the two ends: a track charting long- and short-term is evergreen
    whether or not it made the medium-term list. A long-term top-10 track that
    dropped out of the short-term list is an all_time_favorite, never
    fading_out; fading_out holds the rest of the long- and medium-term tracks.

    Returns None for a track that charted nowhere.
    """
    long_rank = ranks.get('long_term')
    in_long = long_rank is not None
    in_medium = 'medium_term' in ranks
    in_short = 'short_term' in ranks

    if in_long and in_short:
        return EVERGREEN
    if in_long and long_rank <= FAVORITE_RANK:
        return ALL_TIME_FAVORITE
    if (in_long or in_medium) and not in_short:
        return FADING_OUT
    if in_short and in_medium:
        return NEW_OBSESSION
    if in_short:
        return SHORT_TERM
    return None


def badge_label(badge) -> Tuple[str, str]:
    """CSS class and display label for a badge; unknown badges get a humanized label."""
    key = str(badge)
    if key in BADGE_STYLES:
        return BADGE_STYLES[key]
    humanized = key.replace('_', ' ').strip().capitalize()
    return "badge-secondary", humanized


class TrackJourney:
    """Assigns badges to a user's top tracks based on how their rank moved"""

    def __init__(self, client, limit: int = 50):
        self.client = client
        self.limit = limit

    @property
    def time_ranges(self) -> List[Dict[str, str]]:
        return [{'key': key, 'label': TIME_RANGE_LABELS[key]} for key in TIME_RANGES]

    def classify_tracks(self, top_tracks_by_range: Dict[str, List[TopTrack]]) -> List[JourneyTrack]:
        """Merge the per-range lists and badge every track that appears in any of them"""
        merged: Dict[str, JourneyTrack] = {}
        for time_range in TIME_RANGES:
            for track in top_tracks_by_range.get(time_range, []):
                entry = merged.get(track.id)
                if entry is None:
                    entry = JourneyTrack(
                        id=track.id,
                        name=track.name,
                        artists=track.artists,
                        album_image_url=track.album_image_url,
                        spotify_url=track.spotify_url,
                        badge='',
                    )
                    merged[track.id] = entry
                entry.ranks.setdefault(time_range, track.rank)

        for entry in merged.values():
            entry.badge = classify(entry.ranks)
        return list(merged.values())

    def grouped_by_badge(self, max_per_badge: Optional[int] = None) -> Dict[str, List[JourneyTrack]]:
        """
        Fetch top tracks for every time range and group them by badge.

        Badges come back in display order with empty ones left out; tracks within
        a badge are ordered by their best rank. Client errors are not handled here.
        """
        top_tracks_by_range = {
            time_range: self.client.top_tracks(time_range=time_range, limit=self.limit)
            for time_range in TIME_RANGES
        }
        tracks = self.classify_tracks(top_tracks_by_range)

        grouped: Dict[str, List[JourneyTrack]] = {}
        for badge in BADGES:
            members = sorted((t for t in tracks if t.badge == badge), key=lambda t: (t.best_rank, t.id))
            if max_per_badge is not None:
                members = members[:max_per_badge]
            if members:
                grouped[badge] = members

        logger.info(f"Track journey: {len(tracks)} tracks across {len(grouped)} badges")
        return grouped
