"""
Deterministic five-factor scorer used when semantic matching is unavailable
or when the caller asks for traditional matching.

Each factor yields 0-100; the final score is their weighted sum:
skills 40%, experience 25%, budget 20%, profile completeness 10%, location 5%.
"""
from typing import List, NamedTuple, Optional

from gigmatch.helpers.skill_synonyms import SkillSynonyms
from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.models.response import FactorScore
from gigmatch.utils.utils import round_half_up

EXPERIENCE_RANKS = {"beginner": 1, "intermediate": 2, "expert": 3}
DEFAULT_EXPERIENCE_RANK = 2

SKILLS_WEIGHT = 40
EXPERIENCE_WEIGHT = 25
BUDGET_WEIGHT = 20
PROFILE_WEIGHT = 10
LOCATION_WEIGHT = 5


class FactorResult(NamedTuple):
    score: int
    details: str


class FallbackScore(NamedTuple):
    score: int
    factors: List[FactorScore]


def _normalize(skills) -> List[str]:
    out = []
    for s in skills or []:
        s = s.lower().strip() if isinstance(s, str) else ""
        if s and s not in out:
            out.append(s)
    return out


def experience_rank(level: Optional[str]) -> int:
    return EXPERIENCE_RANKS.get((level or "").lower().strip(), DEFAULT_EXPERIENCE_RANK)


class FallbackScorer:
    def __init__(self, synonyms: SkillSynonyms = None):
        self.synonyms = synonyms or SkillSynonyms()

    def skills(self, worker_skills, required_skills) -> FactorResult:
        required = _normalize(required_skills)
        if not required:
            return FactorResult(80, "No specific skills required")

        have = _normalize(worker_skills)
        if not have:
            return FactorResult(0, "No skills listed in profile")

        exact = [s for s in required if s in have]
        partial = [
            s for s in required
            if s not in exact and any(self.synonyms.are_similar(w, s) for w in have)
        ]

        exact_score = len(exact) / len(required) * 100
        partial_score = len(partial) / len(required) * 50
        total = min(100, round_half_up(exact_score + partial_score))

        parts = []
        if exact:
            parts.append(f"{len(exact)}/{len(required)} required skills matched exactly")
        if partial:
            parts.append(f"{len(partial)} similar skills" if exact else f"{len(partial)} similar skills found")
        details = ", ".join(parts) or "No matching skills found"
        return FactorResult(total, details)

    @staticmethod
    def experience(worker_level: Optional[str], job_level: Optional[str]) -> FactorResult:
        if not worker_level or not job_level:
            return FactorResult(70, "Experience level not specified")

        worker_rank = experience_rank(worker_level)
        job_rank = experience_rank(job_level)

        if worker_rank == job_rank:
            return FactorResult(100, "Perfect experience level match")
        if worker_rank > job_rank:
            return FactorResult(90, "Overqualified - higher experience than required")
        if worker_rank == job_rank - 1:
            return FactorResult(75, "Slightly below required experience level")
        return FactorResult(50, "Below required experience level")

    @staticmethod
    def budget(rate: Optional[float], budget_min: Optional[float], budget_max: Optional[float]) -> FactorResult:
        if not rate:
            return FactorResult(60, "No hourly rate specified")
        if not budget_min and not budget_max:
            return FactorResult(70, "Job budget not specified")

        low = float(budget_min or 0)
        high = float(budget_max or low)
        rate = float(rate)

        if low <= rate <= high:
            return FactorResult(100, "Rate within job budget range")

        if rate < low:
            deficit = (low - rate) / low * 100
            if deficit <= 20:
                return FactorResult(80, "Rate slightly below budget range")
            if deficit <= 40:
                return FactorResult(60, "Rate below budget range")
            return FactorResult(30, "Rate significantly below budget range")

        if high <= 0:
            return FactorResult(20, "Rate significantly above budget range")
        excess = (rate - high) / high * 100
        if excess <= 20:
            return FactorResult(70, "Rate slightly above budget range")
        if excess <= 50:
            return FactorResult(40, "Rate above budget range")
        return FactorResult(20, "Rate significantly above budget range")

    @staticmethod
    def profile_completeness(worker: WorkerProfile) -> FactorResult:
        score = 0
        found = []
        if worker.bio and len(worker.bio) > 50:
            score += 25
            found.append("Detailed bio")
        if len(worker.skills) >= 3:
            score += 25
            found.append("Multiple skills listed")
        if worker.professional_title:
            score += 20
            found.append("Professional title")
        if worker.hourly_rate:
            score += 15
            found.append("Hourly rate specified")
        if worker.portfolio_url:
            score += 10
            found.append("Portfolio URL")
        if worker.profile_photo:
            score += 5
            found.append("Profile photo")
        return FactorResult(min(100, score), ", ".join(found) or "Incomplete profile")

    @staticmethod
    def location(worker_location: Optional[str], job_location: Optional[str]) -> FactorResult:
        a = (worker_location or "").lower().strip()
        b = (job_location or "").lower().strip()
        if not a and not b:
            return FactorResult(80, "Location not specified")
        if not a or not b:
            return FactorResult(70, "Partial location information")
        if a == b:
            return FactorResult(100, "Same location")
        if a in b or b in a:
            return FactorResult(85, "Similar location")
        return FactorResult(60, "Different location")

    def score(self, worker: WorkerProfile, job: JobPosting) -> FallbackScore:
        parts = [
            ("skills", "Skills Match", SKILLS_WEIGHT,
             self.skills(worker.skills, job.required_skills)),
            ("experience", "Experience Level", EXPERIENCE_WEIGHT,
             self.experience(worker.experience_level, job.experience_level)),
            ("budget", "Budget Compatibility", BUDGET_WEIGHT,
             self.budget(worker.hourly_rate, job.budget_min, job.budget_max)),
            ("profile", "Profile Quality", PROFILE_WEIGHT,
             self.profile_completeness(worker)),
            ("location", "Location", LOCATION_WEIGHT,
             self.location(worker.location, job.location)),
        ]
        factors = [
            FactorScore(key=key, name=name, score=result.score, weight=weight, details=result.details)
            for key, name, weight, result in parts
        ]
        # weights are whole percents, so the sum is exact before rounding
        final = round_half_up(sum(f.score * f.weight for f in factors) / 100)
        return FallbackScore(final, factors)
