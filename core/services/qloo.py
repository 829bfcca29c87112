import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS = ['food', 'entertainment', 'lifestyle', 'health']


class QlooUnavailable(RuntimeError):
    pass


def _headers() -> dict:
    return {'X-Api-Key': settings.QLOO_API_KEY, 'Content-Type': 'application/json'}


def fetch_taste_keywords(interests: list[str]) -> list[str]:
    """Ask Qloo for taste keywords related to ``interests``."""
    if not settings.QLOO_API_KEY:
        raise QlooUnavailable('Qloo API key not configured')
    r = requests.post(
        f'{settings.QLOO_API_URL}/taste',
        json={'interests': interests},
        headers=_headers(),
        timeout=settings.QLOO_TIMEOUT,
    )
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, dict):
        raise QlooUnavailable(f'unexpected Qloo response: {type(data).__name__}')
    keywords = data.get('keywords') or data.get('results') or []
    if not isinstance(keywords, list):
        raise QlooUnavailable('unexpected Qloo keywords payload')
    return [str(k) for k in keywords if isinstance(k, (str, int))]


def taste_keywords_or_default(interests: list[str]) -> tuple[list[str], str]:
    """Return ``(keywords, source)``; falls back to generic keywords."""
    try:
        keywords = fetch_taste_keywords(interests)
    except (QlooUnavailable, requests.RequestException, ValueError) as e:
        logger.warning('Qloo unavailable, using default keywords: %s', e)
        return list(DEFAULT_KEYWORDS), 'default'
    return (keywords or list(DEFAULT_KEYWORDS)), ('qloo' if keywords else 'default')
