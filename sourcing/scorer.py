"""
Data richness scoring for duplicate resolution.

When two providers return the same perfume, the record carrying more
information wins. The score is additive over field presence:

  - rating > 0                          2
  - longevity / sillage not default     1 each
  - top / middle / base notes present   2 each
  - accords present                     3
  - any season score off neutral        2
  - any occasion score off neutral      2
  - image / year / description present  1 each

Only used internally to break ties between candidates; never shown to users.
"""

from typing import Dict

from sourcing.models import DEFAULT_LONGEVITY, DEFAULT_SILLAGE, NEUTRAL_SCORE, Perfume

RICHNESS_WEIGHTS: Dict[str, int] = {
    "rating": 2,
    "longevity": 1,
    "sillage": 1,
    "top_notes": 2,
    "middle_notes": 2,
    "base_notes": 2,
    "accords": 3,
    "season_scores": 2,
    "occasion_scores": 2,
    "image_url": 1,
    "year": 1,
    "description": 1,
}


def richness_score(record: Perfume) -> int:
    w = RICHNESS_WEIGHTS
    score = 0
    if record.rating > 0:
        score += w["rating"]
    if record.longevity != DEFAULT_LONGEVITY:
        score += w["longevity"]
    if record.sillage != DEFAULT_SILLAGE:
        score += w["sillage"]
    if record.notes.top:
        score += w["top_notes"]
    if record.notes.middle:
        score += w["middle_notes"]
    if record.notes.base:
        score += w["base_notes"]
    if record.accords:
        score += w["accords"]
    if any(s.score != NEUTRAL_SCORE for s in record.season_scores):
        score += w["season_scores"]
    if any(o.score != NEUTRAL_SCORE for o in record.occasion_scores):
        score += w["occasion_scores"]
    if record.image_url:
        score += w["image_url"]
    if record.year:
        score += w["year"]
    if record.description:
        score += w["description"]
    return score
