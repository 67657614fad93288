from gigmatch.models.models import JobPosting, WorkerProfile
from gigmatch.models.response import FactorScore
from gigmatch.services.reasons import (
    fallback_reason, job_match_reason, overlapping_skills, worker_match_reason
)
from conftest import make_job, make_worker


def _factors(skills, experience, budget, profile, location):
    return [
        FactorScore(key="skills", name="Skills Match", score=skills, weight=40),
        FactorScore(key="experience", name="Experience Level", score=experience, weight=25),
        FactorScore(key="budget", name="Budget Compatibility", score=budget, weight=20),
        FactorScore(key="profile", name="Profile Quality", score=profile, weight=10),
        FactorScore(key="location", name="Location", score=location, weight=5),
    ]


class TestFallbackReason:
    """Test cases for explanations of fallback scores"""

    def test_excellent(self):
        reason = fallback_reason(_factors(100, 100, 100, 85, 80), 97)
        assert reason.startswith("Excellent match! ")
        assert "Strong skills match and experience level and budget compatibility." in reason
        assert reason.endswith("Your skills align well with job requirements.")

    def test_limited_suggests_improvements(self):
        reason = fallback_reason(_factors(0, 50, 30, 25, 60), 23)
        assert reason.startswith("Limited match.")
        assert "Consider improving experience level and budget compatibility." in reason
        assert reason.endswith("Consider developing the required skills for better matches.")

    def test_improvements_ordered_by_weighted_score(self):
        # budget 50*20=1000 outweighs skills 20*40=800
        reason = fallback_reason(_factors(20, 90, 50, 100, 100), 55)
        assert "Consider improving budget compatibility and skills match." in reason

    def test_no_improvements_above_seventy(self):
        reason = fallback_reason(_factors(50, 100, 100, 85, 80), 78)
        assert reason.startswith("Good match.")
        assert "Consider improving" not in reason

    def test_fair_band(self):
        assert fallback_reason(_factors(50, 50, 30, 25, 60), 45).startswith("Fair match.")


class TestSemanticReasons:
    """Test cases for explanations of semantic scores"""

    def test_overlapping_skills_case_insensitive(self):
        assert overlapping_skills(["PHP", "Laravel", "php"], ["laravel", "php"]) == ["php", "laravel"]

    def test_job_reason_excellent_lists_matches(self):
        worker = WorkerProfile(**make_worker())
        job = JobPosting(**make_job())
        reason = job_match_reason(worker, job, 91.0)
        assert reason.startswith("Excellent match! Your skills in laravel")
        assert "intermediate level" in reason

    def test_job_reason_default_when_no_overlap(self):
        worker = WorkerProfile(**make_worker(skills=["Go"]))
        job = JobPosting(**make_job())
        assert "in related areas" in job_match_reason(worker, job, 65.0)

    def test_job_reason_potential(self):
        worker = WorkerProfile(**make_worker())
        reason = job_match_reason(worker, JobPosting(**make_job()), 40.0)
        assert reason.startswith("Potential match!")
        assert "PHP, Laravel" in reason

    def test_worker_reason_uses_first_name(self):
        worker = WorkerProfile(**make_worker())
        reason = worker_match_reason(JobPosting(**make_job()), worker, 70.0)
        assert reason.startswith("Strong candidate! Ama brings solid skills in laravel")

    def test_worker_reason_without_name(self):
        worker = WorkerProfile(**make_worker(first_name=None))
        reason = worker_match_reason(JobPosting(**make_job()), worker, 35.0)
        assert reason.startswith("Promising candidate! This candidate has relevant background")
