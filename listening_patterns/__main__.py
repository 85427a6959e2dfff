"""Entry point: refresh listening history and write all pattern views as JSON"""
import json
import logging
import os
import sys

from listening_patterns.config import settings
from listening_patterns.db import db
from listening_patterns.patterns import ListeningPatterns
from listening_patterns.services.spotify import SpotifyAPI, SpotifyError, UnauthorizedError

logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

def build_report(patterns: ListeningPatterns) -> dict:
    """Collect every view into one JSON-serializable dict."""
    journey = patterns.journey(max_per_badge=3)
    return {
        'total_plays': patterns.total_plays(),
        'hourly': patterns.hourly().model_dump(mode='json'),
        'calendar': patterns.calendar().model_dump(mode='json'),
        'monthly': patterns.monthly().model_dump(mode='json'),
        'journey': {
            badge: [track.model_dump(mode='json') for track in tracks]
            for badge, tracks in journey.items()
        },
    }

def run() -> None:
    """Generate the listening report for the configured Spotify token."""
    try:
        db.init()

        # Log config (excluding sensitive data)
        logger.info("Using configuration:")
        safe_config = settings.model_dump(exclude={'SPOTIFY_TOKEN', 'DATABASE_URL'})
        logger.info(json.dumps(safe_config, indent=2))

        client = SpotifyAPI(token=settings.SPOTIFY_TOKEN, base_url=settings.SPOTIFY_API_URL)
        user_id = client.get_user_info()['id']

        with db.session() as session:
            patterns = ListeningPatterns(client, session, user_id, settings.TIMEZONE)
            report = build_report(patterns)

        os.makedirs(settings.OUTPUT_DIR, exist_ok=True)
        output_path = os.path.join(settings.OUTPUT_DIR, "listening_patterns.json")
        with open(output_path, 'w') as f:
            json.dump(report, f, indent=2)

        logger.info(f"Listening report written to {output_path}")

    except UnauthorizedError as e:
        logger.error(f"Spotify rejected the access token, log in again to get a new one: {e}")
        sys.exit(2)
    except SpotifyError as e:
        logger.error(f"Could not reach Spotify: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Error during report generation: {e}")
        sys.exit(1)
    finally:
        db.dispose()

if __name__ == "__main__":
    run()
