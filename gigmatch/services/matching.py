from typing import Optional, Sequence

import numpy as np

from gigmatch.models.response import ScoreBand

EXCELLENT_MIN = 80.0
GOOD_MIN = 60.0
BASIC_MIN = 30.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Vectors of differing length, or with a zero magnitude, score 0.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb)) / (norm_a * norm_b)


def similarity_to_score(similarity: float) -> float:
    # negative similarity stays negative; the match threshold removes it
    return round(similarity * 100, 1)


def score_band(score: float, basic_min: float = BASIC_MIN) -> Optional[ScoreBand]:
    if score >= EXCELLENT_MIN:
        return ScoreBand.EXCELLENT
    if score >= GOOD_MIN:
        return ScoreBand.GOOD
    if score >= basic_min:
        return ScoreBand.BASIC
    return None
