"""
Entity forms: job, company, application and profile.

Each form keeps a draft of raw field values (what the user typed), validates
it locally, and only then sends one request. A local failure raises
FormValidationError and sends nothing; a backend failure raises ApiError and
leaves the draft untouched so the user can fix it and retry.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .api_client import BackendClient
from .errors import FormValidationError
from .models import Application, Company, JobPosting, UserAccount

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
FORM_ERROR = "__all__"

TRUTHY = {"on", "true", "1", "yes"}


@dataclass
class FormResult:
    """What the parent view needs to patch its own list."""

    entity: Any
    action: str  # CREATED or UPDATED


def _number(v: Any) -> float:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        value = float(v)
    else:
        text = str(v if v is not None else "").replace(",", "").strip()
        try:
            value = float(text)
        except ValueError:
            raise ValueError("Please enter valid salary numbers")
    # float() also parses "nan" and "inf"
    if not math.isfinite(value):
        raise ValueError("Please enter valid salary numbers")
    return value


def _whole(n: float):
    return int(n) if float(n).is_integer() else n


def _collect(e: ValidationError) -> Dict[str, str]:
    """Map pydantic errors to {field: message}, aliases as field names."""
    errors: Dict[str, str] = {}
    for err in e.errors():
        loc = err.get("loc") or ()
        key = str(loc[0]) if loc else FORM_ERROR
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(key, msg)
    return errors


# ----------------------------------------------------------------------
# Payloads
# ----------------------------------------------------------------------

class JobPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    category: str
    location: str
    level: Literal["intern", "junior", "mid", "senior", "lead"]
    salary_min: float = Field(alias="salaryMin")
    salary_max: float = Field(alias="salaryMax")
    is_visible: bool = Field(default=True, alias="isVisible")
    company: Optional[str] = None
    recruiter: Optional[str] = None

    @field_validator("salary_min", "salary_max", mode="before")
    @classmethod
    def coerce_salary(cls, v: Any) -> float:
        return _number(v)

    @model_validator(mode="after")
    def check_salary_range(self) -> "JobPayload":
        if self.salary_min >= self.salary_max:
            raise ValueError("Maximum salary must be greater than minimum salary")
        return self

    def to_request(self, include_admin_fields: bool) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True)
        data["salaryMin"] = _whole(self.salary_min)
        data["salaryMax"] = _whole(self.salary_max)
        if not include_admin_fields:
            data.pop("company", None)
            data.pop("recruiter", None)
        else:
            data = {k: v for k, v in data.items() if v not in (None, "")}
        return data


class CompanyPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    website: str = ""
    location: str = ""
    logo_url: str = Field(default="", alias="logoUrl")
    is_active: bool = Field(default=True, alias="isActive")


# ----------------------------------------------------------------------
# Forms
# ----------------------------------------------------------------------

class EntityForm:
    """
    Base form: a draft of raw values plus local validation.

    Subclasses declare FIELDS (name -> default) and REQUIRED (name -> label).
    """

    FIELDS: Dict[str, Any] = {}
    REQUIRED: Dict[str, str] = {}
    BOOLEAN_FIELDS: tuple = ()

    def __init__(self, entity: Any = None, data: Optional[Mapping[str, Any]] = None):
        self.entity = entity
        self.editing = entity is not None
        self.errors: Dict[str, str] = {}
        self.data: Dict[str, Any] = self.initial()
        if data is not None:
            self.data.update(self.parse(data))

    def initial(self) -> Dict[str, Any]:
        if self.entity is not None:
            return self.from_entity(self.entity)
        return dict(self.FIELDS)

    def from_entity(self, entity: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def parse(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        """Raw request form -> draft values (checkboxes become booleans)."""
        values = {}
        for name in self.FIELDS:
            if name in self.BOOLEAN_FIELDS:
                values[name] = str(form.get(name, "")).lower() in TRUTHY
            elif name in form:
                values[name] = form.get(name)
        return values

    def missing_required(self) -> Dict[str, str]:
        errors = {}
        for name, label in self.REQUIRED.items():
            if not str(self.data.get(name) or "").strip():
                errors[name] = f"{label} is required"
        return errors

    def reset(self) -> None:
        self.entity = None
        self.editing = False
        self.errors = {}
        self.data = dict(self.FIELDS)

    def fail(self, errors: Dict[str, str]) -> None:
        self.errors = errors
        raise FormValidationError(errors)

    @property
    def action(self) -> str:
        return UPDATED if self.editing else CREATED


class JobForm(EntityForm):
    """Job create/edit form for recruiters and admins."""

    FIELDS = {
        "title": "",
        "description": "",
        "category": "",
        "location": "",
        "level": "mid",
        "salaryMin": "",
        "salaryMax": "",
        "company": "",
        "recruiter": "",
        "isVisible": True,
    }
    REQUIRED = {
        "title": "Title",
        "description": "Description",
        "category": "Category",
        "location": "Location",
        "level": "Level",
    }
    BOOLEAN_FIELDS = ("isVisible",)

    def __init__(self, entity: Optional[JobPosting] = None, data=None, is_admin: bool = False):
        self.is_admin = is_admin
        super().__init__(entity, data)

    def from_entity(self, job: JobPosting) -> Dict[str, Any]:
        return {
            "title": job.title or "",
            "description": job.description or "",
            "category": job.category or "",
            "location": job.location or "",
            "level": job.level or "mid",
            "salaryMin": _whole(job.salary_min) if job.salary_min is not None else "",
            "salaryMax": _whole(job.salary_max) if job.salary_max is not None else "",
            "company": job.company_id or "",
            "recruiter": job.creator_id or "",
            "isVisible": job.is_visible,
        }

    def validate(self) -> Dict[str, Any]:
        """Return the request body, or raise FormValidationError."""
        errors = self.missing_required()
        try:
            payload = JobPayload.model_validate(
                {k: (v.strip() if isinstance(v, str) else v) for k, v in self.data.items()}
            )
        except ValidationError as e:
            for key, msg in _collect(e).items():
                errors.setdefault(key, msg)
            self.fail(errors)
        if errors:
            self.fail(errors)
        self.errors = {}
        return payload.to_request(include_admin_fields=self.is_admin)

    def submit(self, client: BackendClient, token: str) -> FormResult:
        body = self.validate()
        if self.editing:
            job = client.update_job(token, self.entity.id, body)
        else:
            job = client.create_job(token, body)
        result = FormResult(entity=job, action=self.action)
        logger.info(f"Job {job.id} {result.action}")
        self.reset()
        return result


class CompanyForm(EntityForm):
    """Company create/edit form (admin only)."""

    FIELDS = {
        "name": "",
        "description": "",
        "website": "",
        "location": "",
        "logoUrl": "",
        "isActive": True,
    }
    REQUIRED = {"name": "Company name"}
    BOOLEAN_FIELDS = ("isActive",)

    def from_entity(self, company: Company) -> Dict[str, Any]:
        return {
            "name": company.name or "",
            "description": company.description or "",
            "website": company.website or "",
            "location": company.location or "",
            "logoUrl": company.logo_url or "",
            "isActive": company.is_active,
        }

    def validate(self) -> Dict[str, Any]:
        errors = self.missing_required()
        if errors:
            self.fail(errors)
        try:
            payload = CompanyPayload.model_validate(
                {k: (v.strip() if isinstance(v, str) else v) for k, v in self.data.items()}
            )
        except ValidationError as e:
            self.fail(_collect(e))
        self.errors = {}
        return payload.model_dump(by_alias=True)

    def submit(self, client: BackendClient, token: str) -> FormResult:
        body = self.validate()
        if self.editing:
            company = client.update_company(token, self.entity.id, body)
        else:
            company = client.create_company(token, body)
        result = FormResult(entity=company, action=self.action)
        logger.info(f"Company {company.id} {result.action}")
        self.reset()
        return result


class ApplicationForm(EntityForm):
    """Cover letter plus optional PDF resume for one job."""

    FIELDS = {"coverLetter": ""}
    REQUIRED = {"coverLetter": "Cover letter"}

    def __init__(self, job: JobPosting, data=None, resume=None):
        self.job = job
        self.resume = resume
        super().__init__(None, data)

    def validate(self) -> None:
        errors = self.missing_required()
        filename = getattr(self.resume, "filename", None)
        if filename and not filename.lower().endswith(".pdf"):
            errors["resume"] = "Resume must be a PDF file"
        if errors:
            self.fail(errors)
        self.errors = {}

    def _resume_file(self):
        if self.resume is None or not getattr(self.resume, "filename", None):
            return None
        stream: BinaryIO = self.resume.stream
        return (self.resume.filename, stream, self.resume.mimetype or "application/pdf")

    def submit(self, client: BackendClient, token: str, has_applied: bool = False) -> Optional[FormResult]:
        """
        Send the application.

        Returns None without sending anything when the viewer already applied.
        """
        if has_applied:
            logger.info(f"Skipping duplicate application for job {self.job.id}")
            return None
        self.validate()
        application: Application = client.apply(
            token, self.job.id, self.data["coverLetter"].strip(), self._resume_file()
        )
        self.reset()
        return FormResult(entity=application, action=CREATED)


class ProfileForm(EntityForm):
    """Name, phone and candidate skills for the signed-in user."""

    FIELDS = {"name": "", "phone": "", "skills": ""}
    REQUIRED = {"name": "Full name"}

    def from_entity(self, user: UserAccount) -> Dict[str, Any]:
        skills = user.candidate.skills if user.candidate else []
        return {
            "name": user.name or "",
            "phone": user.phone or "",
            "skills": ", ".join(skills),
        }

    @staticmethod
    def split_skills(text: str) -> List[str]:
        return [s.strip() for s in (text or "").split(",") if s.strip()]

    def validate(self) -> Dict[str, Any]:
        errors = self.missing_required()
        if errors:
            self.fail(errors)
        self.errors = {}
        experience = []
        if self.entity is not None and self.entity.candidate:
            experience = self.entity.candidate.experience
        return {
            "name": self.data["name"].strip(),
            "phone": (self.data.get("phone") or "").strip(),
            "candidate": {
                "skills": self.split_skills(self.data.get("skills", "")),
                "experience": experience,
            },
        }

    def submit(self, client: BackendClient, token: str) -> FormResult:
        body = self.validate()
        user = client.update_me(token, body)
        # Profile stays on screen after saving, pre-filled with the saved values
        self.entity = user
        self.editing = True
        self.data = self.from_entity(user)
        return FormResult(entity=user, action=UPDATED)
