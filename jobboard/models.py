"""
Transport records returned by the backend API.

The backend owns these entities and their invariants. The models here only
parse what arrives (unknown fields are kept) and add the small display
helpers templates need.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

JOB_LEVELS = ["intern", "junior", "mid", "senior", "lead"]
LEVEL_LABELS = {
    "intern": "Intern",
    "junior": "Junior",
    "mid": "Mid-Level",
    "senior": "Senior",
    "lead": "Lead",
}
JOB_CATEGORIES = [
    "Programming", "Designing", "Marketing", "Accounting", "Analytics",
    "Sales", "Customer Service", "Human Resources", "Operations", "Research",
]
USER_ROLES = ["candidate", "recruiter", "admin"]
APPLICATION_STATUSES = ["pending", "accepted", "rejected"]


class Record(BaseModel):
    """Base for backend records: camelCase aliases, extra fields kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", alias="_id")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def dump(self) -> Dict[str, Any]:
        """Serialize back to the backend's field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _ref_id(ref: Any) -> Optional[str]:
    if ref is None or ref == "":
        return None
    if isinstance(ref, Record):
        return ref.id or None
    if isinstance(ref, dict):
        value = ref.get("_id") or ref.get("id")
        return str(value) if value else None
    return str(ref)


class Company(Record):
    name: str = ""
    description: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    is_active: bool = Field(default=True, alias="isActive")

    @property
    def initial(self) -> str:
        return (self.name[:1] or "C").upper()


class JobPosting(Record):
    slug: Optional[str] = None
    title: str = ""
    description: str = ""
    category: Optional[str] = None
    location: Optional[str] = None
    level: Optional[str] = None
    salary_min: Optional[float] = Field(default=None, alias="salaryMin")
    salary_max: Optional[float] = Field(default=None, alias="salaryMax")
    is_visible: bool = Field(default=True, alias="isVisible")
    company: Optional[Union[Company, str]] = None
    created_by: Optional[Union[Dict[str, Any], str]] = Field(default=None, alias="createdBy")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    applicant_count: int = Field(default=0, alias="applicantCount")

    @field_validator("applicant_count", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        if isinstance(v, list):
            return len(v)
        return v or 0

    @property
    def company_id(self) -> Optional[str]:
        return _ref_id(self.company)

    @property
    def company_name(self) -> str:
        if isinstance(self.company, Company):
            return self.company.name
        return ""

    @property
    def creator_id(self) -> Optional[str]:
        return _ref_id(self.created_by)

    @property
    def path_key(self) -> str:
        """Identifier used in detail URLs (slug when the backend has one)."""
        return self.slug or self.id

    @property
    def level_label(self) -> str:
        return LEVEL_LABELS.get(self.level or "", self.level or "")

    def salary_label(self) -> str:
        """
        Human-readable salary range.

        Example:
            >>> JobPosting(salaryMin=50000, salaryMax=80000).salary_label()
            '$50,000 - $80,000'
        """
        low, high = self.salary_min, self.salary_max
        if not low and not high:
            return "Salary not specified"
        if low and high:
            return f"${low:,.0f} - ${high:,.0f}"
        if low:
            return f"${low:,.0f}+"
        return f"Up to ${high:,.0f}"


class CandidateProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    skills: List[str] = Field(default_factory=list)
    experience: List[Dict[str, Any]] = Field(default_factory=list)
    resume_url: Optional[str] = Field(default=None, alias="resumeUrl")


class UserAccount(Record):
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[str] = None
    candidate: Optional[CandidateProfile] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class Application(Record):
    job: Optional[Union[JobPosting, str]] = None
    candidate: Optional[Union[UserAccount, str]] = None
    cover_letter: str = Field(default="", alias="coverLetter")
    resume_url: Optional[str] = Field(default=None, alias="resumeUrl")
    status: str = "pending"
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @property
    def job_id(self) -> Optional[str]:
        return _ref_id(self.job)

    @property
    def job_record(self) -> Optional[JobPosting]:
        return self.job if isinstance(self.job, JobPosting) else None

    @property
    def candidate_record(self) -> Optional[UserAccount]:
        return self.candidate if isinstance(self.candidate, UserAccount) else None


class SavedJob(Record):
    job: Optional[Union[JobPosting, str]] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @property
    def job_id(self) -> Optional[str]:
        return _ref_id(self.job)

    @property
    def job_record(self) -> Optional[JobPosting]:
        return self.job if isinstance(self.job, JobPosting) else None


class Pagination(BaseModel):
    page: int = 1
    pages: int = 1
    total: int = 0


class JobPage(BaseModel):
    jobs: List[JobPosting] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class Metrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    total_users: int = Field(default=0, alias="totalUsers")
    total_jobs: int = Field(default=0, alias="totalJobs")
    total_companies: int = Field(default=0, alias="totalCompanies")
    total_applications: int = Field(default=0, alias="totalApplications")
    users_by_role: Dict[str, int] = Field(default_factory=dict, alias="usersByRole")
    jobs_by_category: Dict[str, int] = Field(default_factory=dict, alias="jobsByCategory")
