"""Spotify API integration service"""
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from listening_patterns.models.listening import RecentPlay, TopTrack
from listening_patterns.services.history import parse_played_at

logger = logging.getLogger(__name__)

# --- Constants for Fetching Control ---
# Spotify caps recently-played and top-items pages at 50
PAGE_SIZE = 50
# Max requests for paginated endpoints (recently_played)
MAX_RECENT_PAGES = 20
# Base delay in seconds for retries on rate limit
RATE_LIMIT_RETRY_BASE_DELAY = 2
# Small delay between pagination requests to be gentle on the API
PAGINATION_DELAY_SECONDS = 0.1
REQUEST_TIMEOUT_SECONDS = 15

TIME_RANGES = ('long_term', 'medium_term', 'short_term')
# ------------------------------------


class SpotifyError(Exception):
    """Any failure talking to the Spotify API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(SpotifyError):
    """The access token is missing, expired or revoked"""


def _get_image_url(images_list: List[Dict], preferred_index: int = 1) -> Optional[str]:
    """Safely extracts an image URL from Spotify's image list."""
    if not images_list or not isinstance(images_list, list):
        return None
    if len(images_list) > preferred_index and isinstance(images_list[preferred_index], dict):
        return images_list[preferred_index].get('url')
    for img in images_list:
        if isinstance(img, dict) and img.get('url'):
            return img.get('url')
    return None

def _get_spotify_url(external_urls: Optional[Dict[str, str]]) -> Optional[str]:
    """Safely extracts the Spotify URL from external_urls."""
    if isinstance(external_urls, dict):
        return external_urls.get('spotify')
    return None

def _get_artist_names(artists_list: Optional[List[Dict]]) -> List[str]:
    if not isinstance(artists_list, list):
        return []
    return [a['name'] for a in artists_list if isinstance(a, dict) and a.get('name')]


class SpotifyAPI:
    """Handles all Spotify API interactions with consistent formatting"""

    def __init__(self, token: str, base_url: str = "https://api.spotify.com/v1"):
        """
        Initialize with Spotify access token
        """
        if not token:
            raise UnauthorizedError("Spotify token cannot be empty")
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Accept': 'application/json'
        })

    def get_user_info(self) -> Dict[str, Any]:
        """Get basic user profile information"""
        user_info = self._make_request('me')
        if 'id' not in user_info:
            raise SpotifyError(f"Invalid user info response received: {user_info}")
        return user_info

    def recently_played(self, limit: int = PAGE_SIZE) -> List[RecentPlay]:
        """
        Get recently played tracks, newest first, following the 'before' cursor

        Args:
            limit: Total number of plays wanted; fetched in pages of 50
        """
        plays: List[RecentPlay] = []
        before: Optional[int] = None
        page_count = 0

        while len(plays) < limit and page_count < MAX_RECENT_PAGES:
            params: Dict[str, Any] = {'limit': min(PAGE_SIZE, limit - len(plays))}
            if before is not None:
                params['before'] = before

            response_data = self._make_request('me/player/recently-played', params=params)
            page_count += 1
            items = response_data.get('items')
            if not isinstance(items, list) or not items:
                break

            oldest: Optional[datetime] = None
            for item in items:
                play = self._to_recent_play(item)
                if play is None:
                    logger.warning(f"Skipping invalid recently played entry: {item}")
                    continue
                plays.append(play)
                if play.played_at and (oldest is None or play.played_at < oldest):
                    oldest = play.played_at

            if oldest is None or len(items) < params['limit']:
                break
            before = int(oldest.timestamp() * 1000) - 1
            time.sleep(PAGINATION_DELAY_SECONDS)

        logger.info(f"Fetched {len(plays)} recently played tracks in {page_count} pages")
        return plays[:limit]

    def top_tracks(self, time_range: str = 'medium_term', limit: int = PAGE_SIZE) -> List[TopTrack]:
        """
        Get user's top tracks

        Args:
            time_range: short_term (4 weeks), medium_term (6 months), or long_term (years)
            limit: Number of tracks to fetch (Spotify API max is 50).
        """
        if time_range not in TIME_RANGES:
            raise ValueError(f"Unknown time range {time_range!r}")
        actual_limit = max(1, min(limit, PAGE_SIZE))
        response_data = self._make_request(
            'me/top/tracks', params={'time_range': time_range, 'limit': actual_limit}
        )
        items = response_data.get('items')
        if not isinstance(items, list):
            logger.warning(f"Unexpected response format for top tracks ({time_range}): {response_data}")
            return []

        tracks = []
        for track in items:
            if not (isinstance(track, dict) and track.get('id')):
                logger.warning(f"Skipping invalid top track entry: {track}")
                continue
            tracks.append(TopTrack(
                id=track['id'],
                name=track.get('name'),
                artists=_get_artist_names(track.get('artists')),
                album_image_url=_get_image_url((track.get('album') or {}).get('images', [])),
                spotify_url=_get_spotify_url(track.get('external_urls')),
                rank=len(tracks) + 1,
            ))
        return tracks

    @staticmethod
    def _to_recent_play(item: Any) -> Optional[RecentPlay]:
        if not isinstance(item, dict):
            return None
        track = item.get('track')
        if not (isinstance(track, dict) and track.get('id')):
            return None
        album = track.get('album') if isinstance(track.get('album'), dict) else {}
        duration = track.get('duration_ms')
        try:
            duration_ms = max(0, int(duration)) if duration is not None else 0
        except (TypeError, ValueError):
            duration_ms = 0
        return RecentPlay(
            id=track['id'],
            name=track.get('name'),
            artists=_get_artist_names(track.get('artists')),
            album_name=album.get('name'),
            album_image_url=_get_image_url(album.get('images', [])),
            preview_url=track.get('preview_url'),
            spotify_url=_get_spotify_url(track.get('external_urls')),
            duration_ms=duration_ms,
            played_at=parse_played_at(item.get('played_at')),
        )

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None, retries: int = 3) -> Dict:
        """Make authenticated request to Spotify API with retries"""
        url = f'{self.base_url}/{endpoint}'
        attempt = 0
        last_error: Optional[SpotifyError] = None

        while attempt < retries:
            attempt += 1
            try:
                logger.debug(f"Attempt {attempt}/{retries}: Making request to {url}")
                response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
            except requests.exceptions.RequestException as e:
                last_error = SpotifyError(f"Request error for {url}: {e}")
                logger.warning(f"Request Error on attempt {attempt} for {url}: {e}. Retrying...")
            else:
                status = response.status_code
                if status == 401:
                    logger.error(f"Spotify token is invalid or expired (401) for {url}. Cannot proceed.")
                    raise UnauthorizedError("Spotify token is invalid or expired", status_code=401)
                if status == 429:
                    backoff = RATE_LIMIT_RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    try:
                        retry_after = int(response.headers.get('Retry-After', backoff))
                    except (TypeError, ValueError):
                        # HTTP-date form is not supported
                        retry_after = backoff
                    retry_after = max(1, min(retry_after, 60))
                    last_error = SpotifyError(f"Rate limited by Spotify for {url}", status_code=429)
                    logger.warning(f"Rate limit hit (429) for {url}. Retrying after {retry_after} seconds...")
                    if attempt < retries:
                        time.sleep(retry_after)
                    continue
                if status >= 500:
                    last_error = SpotifyError(f"Spotify server error ({status}) for {url}", status_code=status)
                    logger.warning(f"Spotify server error ({status}) for {url}. Retrying...")
                elif status >= 400:
                    message = self._error_message(response)
                    logger.error(f"Client error ({status}) for {url}: {message}")
                    raise SpotifyError(message, status_code=status)
                else:
                    try:
                        json_response = response.json()
                    except ValueError:
                        logger.error(f"Failed to decode JSON response from {url}. Status: {status}. Response text: {response.text[:200]}")
                        raise SpotifyError(f"Malformed response from {url}", status_code=status)
                    if not isinstance(json_response, dict):
                        raise SpotifyError(f"Unexpected response shape from {url}", status_code=status)
                    return json_response

            if attempt < retries:
                sleep_time = RATE_LIMIT_RETRY_BASE_DELAY * (1.5 ** (attempt - 1)) + (0.5 * attempt)
                logger.info(f"Waiting {sleep_time:.2f}s before next retry for {url}...")
                time.sleep(sleep_time)

        logger.error(f"Request failed after {retries} attempts for {url}.")
        raise last_error or SpotifyError(f"Request failed after {retries} attempts for {url}")

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Pull Spotify's error message out of an error response body"""
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        error = body.get('error') if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get('message'):
            return str(error['message'])
        if isinstance(error, str):
            return error
        return f"HTTP {response.status_code}"
