"""Pure helpers shared by SOS fan-out, bank search and coupon matching."""
from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _normalize(keywords) -> list[str]:
    return [str(k).strip().lower() for k in (keywords or []) if str(k).strip()]


def calculate_match_score(donor_keywords, coupon_keywords) -> int:
    """+2 per exact keyword hit, +1 per partial (substring) hit; case-insensitive."""
    targets = _normalize(coupon_keywords)
    score = 0
    for kw in _normalize(donor_keywords):
        if kw in targets:
            score += 2
        elif any(kw in t or t in kw for t in targets):
            score += 1
    return score
