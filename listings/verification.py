"""Authenticity scoring for listings ("AI verification").

The score is cosmetic: a formula over how much evidence the seller uploaded
(extra photos, a 360 video, certificates) plus random jitter. Set
`authenticity_fixed_score` in settings.conf to replace it with a constant.
"""

import math
import random
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from config import settings_conf

MIN_SCORE = 18.5
MAX_SCORE = 97.5
BOOSTED_MAX_SCORE = 99.9

def round_score(value: float) -> float:
    """Round half-up to one decimal place."""
    return float(Decimal(str(value)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))

def _boosted_score(photo_count: int, has_video: bool, certificate_count: int, rng: random.Random) -> float:
    score = 95.0
    if photo_count >= 5:
        score += 1.5
    if photo_count >= 10:
        score += 0.8
    if has_video:
        score += 1.2
    if certificate_count >= 1:
        score += 0.9
    if certificate_count >= 2:
        score += 0.6

    score += rng.random() * 0.5
    return min(score, BOOSTED_MAX_SCORE)

def _standard_score(photo_count: int, has_video: bool, certificate_count: int, rng: random.Random) -> float:
    score = 25.0

    if photo_count > 0:
        score += min(15 + photo_count * 2.5 + math.sqrt(photo_count) * 3, 40)

    if has_video:
        score += 20 + rng.random() * 5

    if certificate_count > 0:
        score += min(certificate_count * 8 + math.pow(certificate_count, 1.3) * 2, 25)

    # Bonus per kind of evidence supplied
    evidence_kinds = sum([photo_count > 0, bool(has_video), certificate_count > 0])
    score += evidence_kinds * 2.5

    score += (rng.random() - 0.5) * 8
    score += rng.random() * 0.9

    return max(min(score, MAX_SCORE), MIN_SCORE)

def calculate_authenticity_score(
    artist: str,
    photo_count: int = 0,
    has_video: bool = False,
    certificate_count: int = 0,
    rng: Optional[random.Random] = None,
    boosted_artist: Optional[str] = None,
    fixed_score: Optional[float] = None
) -> float:
    """Score a listing's verification evidence on a 0-100 scale.

    Args:
        artist: The listing's artist
        photo_count: Number of additional photos uploaded
        has_video: Whether a 360 video was uploaded
        certificate_count: Number of certificates of authenticity uploaded
        rng: Random source, injectable for deterministic results
        boosted_artist: Artist that always scores 95+. Defaults to settings.
        fixed_score: Constant to return instead of running the formula.
            Defaults to settings.

    Returns:
        Score rounded to one decimal place
    """
    if photo_count < 0 or certificate_count < 0:
        raise ValueError("Evidence counts cannot be negative")

    if fixed_score is None:
        fixed_score = settings_conf.get('authenticity_fixed_score')
    if fixed_score is not None:
        return round_score(fixed_score)

    if boosted_artist is None:
        boosted_artist = settings_conf.get('authenticity_boosted_artist', '')
    rng = rng or random.Random()

    if boosted_artist and (artist or '').strip().lower() == boosted_artist.lower():
        score = _boosted_score(photo_count, has_video, certificate_count, rng)
    else:
        score = _standard_score(photo_count, has_video, certificate_count, rng)

    return round_score(score)

def score_band(score: float) -> str:
    """Label shown next to a score."""
    if score >= 90:
        return 'outstanding'
    if score >= 80:
        return 'excellent'
    if score >= 60:
        return 'good'
    if score >= 40:
        return 'fair'
    return 'low'
