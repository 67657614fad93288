"""
Human-readable explanations attached to each match.
"""
from typing import List, Sequence

from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.models.response import FactorScore


def overlapping_skills(first: Sequence[str], second: Sequence[str]) -> List[str]:
    """Case-insensitive intersection, in the order of ``first``."""
    wanted = {s.lower().strip() for s in second}
    out = []
    for s in first:
        norm = s.lower().strip()
        if norm in wanted and norm not in out:
            out.append(norm)
    return out


def _join(skills: Sequence[str], limit: int, default: str) -> str:
    picked = [s for s in skills[:limit] if s]
    return ", ".join(picked) if picked else default


def fallback_reason(factors: List[FactorScore], final_score: float) -> str:
    ranked = sorted(factors, key=lambda f: f.score * f.weight, reverse=True)
    top = ranked[:3]

    if final_score >= 80:
        reason = "Excellent match! "
    elif final_score >= 60:
        reason = "Good match. "
    elif final_score >= 40:
        reason = "Fair match. "
    else:
        reason = "Limited match. "

    strong = [f for f in top if f.score >= 80]
    # named in order of weighted score, like the strengths
    weak = [f for f in ranked if f.score < 60]

    if strong:
        reason += "Strong " + " and ".join(f.name.lower() for f in strong) + ". "

    if weak and final_score < 70:
        reason += "Consider improving " + " and ".join(f.name.lower() for f in weak[:2]) + ". "

    skills = next((f for f in factors if f.key == "skills"), None)
    if skills is not None:
        if skills.score >= 80:
            reason += "Your skills align well with job requirements. "
        elif skills.score < 50:
            reason += "Consider developing the required skills for better matches. "

    return reason.strip()


def job_match_reason(worker: WorkerProfile, job: JobPosting, score: float) -> str:
    """Semantic-path reason shown to a worker for one posting."""
    matching = overlapping_skills(worker.skills, job.required_skills)
    level = worker.experience_level or "unspecified"

    if score >= 80:
        return (
            f"Excellent match! Your skills in {_join(matching, 3, 'this field')} align perfectly "
            f"with this job's requirements. Your {level} level experience is ideal for this position."
        )
    if score >= 60:
        return (
            f"Good match! You have relevant experience in {_join(matching, 2, 'related areas')}. "
            "This role could be a great opportunity to expand your skillset while leveraging your existing expertise."
        )
    return (
        "Potential match! While this role may require some new skills, your background in "
        f"{_join(worker.skills, 2, 'your field')} provides a solid foundation. Consider this as a growth opportunity."
    )


def worker_match_reason(job: JobPosting, worker: WorkerProfile, score: float) -> str:
    """Semantic-path reason shown to an employer for one worker."""
    matching = overlapping_skills(job.required_skills, worker.skills)
    name = worker.first_name or "This candidate"
    level = worker.experience_level or "unspecified"

    if score >= 80:
        return (
            f"Perfect candidate! {name} has extensive experience in {_join(matching, 3, 'the required areas')} "
            f"and their {level} level expertise matches your requirements exactly."
        )
    if score >= 60:
        return (
            f"Strong candidate! {name} brings solid skills in {_join(matching, 2, 'related areas')} "
            "and could deliver excellent results for your project."
        )
    return (
        f"Promising candidate! {name} has relevant background and could grow into this role. "
        f"Their experience in {_join(worker.skills, 2, 'their field')} provides a good foundation."
    )
