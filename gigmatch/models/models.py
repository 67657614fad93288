from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class RecordKind(str, Enum):
    WORKER = "worker"
    JOB = "job"


def _clean_skills(v):
    if v is None:
        return []
    if isinstance(v, str):
        v = v.replace(";", ",").split(",")
    return [str(s).strip() for s in v if str(s).strip()]


class WorkerProfile(BaseModel):
    """Gig worker record as held by the record store."""
    id: str
    first_name: str = ""
    user_type: str = "gig_worker"
    skills: List[str] = Field(default_factory=list)
    bio: str = ""
    professional_title: str = ""
    experience_level: Optional[str] = None
    hourly_rate: Optional[float] = None
    location: Optional[str] = None
    portfolio_url: Optional[str] = None
    profile_photo: Optional[str] = None
    profile_status: str = "active"
    profile_completed: bool = False
    # raw stored vector; parsed lazily, see utils.coerce_vector
    skills_embedding: Any = None

    @field_validator('skills', mode='before')
    @classmethod
    def normalize_skills(cls, v):
        return _clean_skills(v)

    @field_validator('bio', 'professional_title', 'first_name', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return v or ""

    @field_validator('id', mode='before')
    @classmethod
    def id_as_str(cls, v):
        return str(v)


class JobPosting(BaseModel):
    """Gig job posting record as held by the record store."""
    id: str
    employer_id: str
    title: str = ""
    description: str = ""
    required_skills: List[str] = Field(default_factory=list)
    experience_level: Optional[str] = None
    budget_type: Optional[str] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    location: Optional[str] = None
    status: str = "open"
    skills_embedding: Any = None

    @field_validator('required_skills', mode='before')
    @classmethod
    def normalize_skills(cls, v):
        return _clean_skills(v)

    @field_validator('title', 'description', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return v or ""

    @field_validator('id', 'employer_id', mode='before')
    @classmethod
    def id_as_str(cls, v):
        return str(v)


class ProfileUpdate(BaseModel):
    """Fields a worker may change through the profile-change event."""
    skills: Optional[List[str]] = None
    experience_level: Optional[str] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    bio: Optional[str] = None
    professional_title: Optional[str] = None

    @field_validator('skills', mode='before')
    @classmethod
    def normalize_skills(cls, v):
        if v is None:
            return None
        return _clean_skills(v)
