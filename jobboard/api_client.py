"""
Backend REST API client.

Every view talks to the backend through BackendClient. Authenticated calls
carry the viewer's session token as a Bearer credential; public reads (job
listing and detail) send none. Errors come back as ApiError with the message
already composed for display. Nothing is retried.
"""

import logging
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from .errors import ApiError, BackendUnavailable, error_message
from .models import (
    Application,
    Company,
    JobPage,
    JobPosting,
    Metrics,
    SavedJob,
    UserAccount,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_TIMEOUT = 15  # seconds

# Resume uploads: (filename, stream, content type)
ResumeFile = Tuple[str, BinaryIO, str]


class BackendClient:
    """
    Thin wrapper over requests for the versioned backend API.

    Args:
        base_url: Versioned API prefix, e.g. https://api.example.com/api/v1
        timeout: Seconds allowed per request
        session: Optional requests.Session (tests pass a mock)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def get_headers(self, token: Optional[str] = None) -> Dict[str, str]:
        """Headers for a backend request, including the Bearer token if any."""
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, ResumeFile]] = None,
        fallback: str = "Request failed. Please try again.",
    ) -> Any:
        """
        Issue one request and return the decoded JSON body.

        Returns None for empty bodies (204 responses).

        Raises:
            BackendUnavailable: On timeout (504) or connection failure (503)
            ApiError: On any non-2xx response
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self.get_headers(token),
                params=params,
                json=json,
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"{method} {path} timed out after {self.timeout}s")
            raise BackendUnavailable(504, "The server took too long to respond. Please try again.")
        except requests.exceptions.ConnectionError:
            logger.warning(f"{method} {path} could not connect to backend")
            raise BackendUnavailable(503, "Cannot connect to the server. Please try again later.")

        logger.debug(f"{method} {path} -> {response.status_code}")

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        if not 200 <= response.status_code < 300:
            message = error_message(body, fallback)
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise ApiError(response.status_code, message, body if isinstance(body, dict) else None)

        return body

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def list_jobs(self, params: Mapping[str, str]) -> JobPage:
        """GET /jobs with the serialized filter set as query parameters."""
        body = self.request("GET", "/jobs", params=params, fallback="Failed to load jobs")
        return _parse(JobPage, body or {}, "Failed to load jobs")

    def get_job(self, slug: str) -> Optional[JobPosting]:
        """GET /jobs/{slug}; None when the job does not exist."""
        try:
            body = self.request("GET", f"/jobs/{slug}", fallback="Failed to load job")
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return _parse(JobPosting, _unwrap(body, "job"), "Failed to load job")

    def create_job(self, token: str, payload: Dict[str, Any]) -> JobPosting:
        body = self.request("POST", "/jobs", token=token, json=payload, fallback="Failed to save job")
        return _parse(JobPosting, _unwrap(body, "job"), "Failed to save job")

    def update_job(self, token: str, job_id: str, payload: Dict[str, Any]) -> JobPosting:
        body = self.request(
            "PUT", f"/jobs/{job_id}", token=token, json=payload, fallback="Failed to save job"
        )
        return _parse(JobPosting, _unwrap(body, "job"), "Failed to save job")

    def delete_job(self, token: str, job_id: str) -> None:
        self.request("DELETE", f"/jobs/{job_id}", token=token, fallback="Failed to delete job")

    def toggle_job_visibility(self, token: str, job_id: str, is_visible: bool) -> Optional[JobPosting]:
        """PATCH /jobs/{id}/visibility; returns the updated job when the backend sends one."""
        body = self.request(
            "PATCH",
            f"/jobs/{job_id}/visibility",
            token=token,
            json={"isVisible": is_visible},
            fallback="Failed to update job visibility",
        )
        return _maybe(JobPosting, _unwrap(body, "job"), "Failed to update job visibility")

    def recruiter_jobs(self, token: str) -> List[JobPosting]:
        body = self.request("GET", "/jobs/recruiter/me", token=token, fallback="Failed to load your jobs")
        return _parse_list(JobPosting, _unwrap_list(body, "jobs"), "Failed to load your jobs")

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def apply(
        self,
        token: str,
        job_id: str,
        cover_letter: str,
        resume: Optional[ResumeFile] = None,
    ) -> Application:
        """POST /applications/{jobId} as multipart form data."""
        files = {"resume": resume} if resume else None
        body = self.request(
            "POST",
            f"/applications/{job_id}",
            token=token,
            data={"coverLetter": cover_letter},
            files=files,
            fallback="Failed to submit application. Please try again.",
        )
        return _parse(
            Application, _unwrap(body, "application"), "Failed to submit application. Please try again."
        )

    def my_applications(self, token: str) -> List[Application]:
        body = self.request(
            "GET", "/applications/candidate/me", token=token, fallback="Failed to load applications"
        )
        return _parse_list(
            Application, _unwrap_list(body, "applications"), "Failed to load applications"
        )

    def recruiter_applications(self, token: str) -> List[Application]:
        body = self.request(
            "GET", "/applications/recruiter", token=token, fallback="Failed to load applications"
        )
        return _parse_list(
            Application, _unwrap_list(body, "applications"), "Failed to load applications"
        )

    # ------------------------------------------------------------------
    # Saved jobs
    # ------------------------------------------------------------------

    def saved_jobs(self, token: str) -> List[SavedJob]:
        body = self.request("GET", "/saved", token=token, fallback="Failed to load saved jobs")
        return _parse_list(SavedJob, _unwrap_list(body, "saved"), "Failed to load saved jobs")

    def save_job(self, token: str, job_id: str) -> None:
        self.request("POST", f"/saved/{job_id}", token=token, fallback="Failed to save job")

    def unsave_job(self, token: str, job_id: str) -> None:
        self.request("DELETE", f"/saved/{job_id}", token=token, fallback="Failed to remove saved job")

    def is_saved(self, token: str, job_id: str) -> bool:
        body = self.request("GET", f"/saved/{job_id}/check", token=token)
        return isinstance(body, dict) and bool(body.get("isSaved"))

    # ------------------------------------------------------------------
    # Current user
    # ------------------------------------------------------------------

    def get_me(self, token: str) -> UserAccount:
        body = self.request("GET", "/auth/me", token=token, fallback="Failed to load profile")
        return _parse(UserAccount, _unwrap(body, "user"), "Failed to load profile")

    def update_me(self, token: str, payload: Dict[str, Any]) -> UserAccount:
        body = self.request(
            "PUT", "/auth/me", token=token, json=payload, fallback="Failed to update profile"
        )
        return _parse(UserAccount, _unwrap(body, "user"), "Failed to update profile")

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def admin_metrics(self, token: str) -> Metrics:
        body = self.request("GET", "/admin/metrics", token=token, fallback="Failed to load metrics")
        return _parse(Metrics, body or {}, "Failed to load metrics")

    def admin_jobs(self, token: str) -> List[JobPosting]:
        body = self.request("GET", "/admin/jobs", token=token, fallback="Failed to load jobs")
        return _parse_list(JobPosting, _unwrap_list(body, "jobs"), "Failed to load jobs")

    def admin_delete_job(self, token: str, job_id: str) -> None:
        self.request("DELETE", f"/admin/jobs/{job_id}", token=token, fallback="Failed to delete job")

    def admin_toggle_job_visibility(self, token: str, job_id: str) -> Optional[JobPosting]:
        body = self.request(
            "PATCH",
            f"/admin/jobs/{job_id}/visibility",
            token=token,
            fallback="Failed to toggle job visibility",
        )
        return _maybe(JobPosting, _unwrap(body, "job"), "Failed to toggle job visibility")

    def admin_users(self, token: str, role: Optional[str] = None) -> List[UserAccount]:
        params = {"role": role} if role else None
        body = self.request("GET", "/admin/users", token=token, params=params, fallback="Failed to load users")
        return _parse_list(UserAccount, _unwrap_list(body, "users"), "Failed to load users")

    def update_user_role(self, token: str, user_id: str, role: str) -> Optional[UserAccount]:
        body = self.request(
            "PATCH",
            f"/admin/users/{user_id}/role",
            token=token,
            json={"role": role},
            fallback="Failed to update user role",
        )
        return _maybe(UserAccount, _unwrap(body, "user"), "Failed to update user role")

    def admin_companies(self, token: str) -> List[Company]:
        body = self.request("GET", "/admin/companies", token=token, fallback="Failed to load companies")
        return _parse_list(Company, _unwrap_list(body, "companies"), "Failed to load companies")

    def create_company(self, token: str, payload: Dict[str, Any]) -> Company:
        body = self.request(
            "POST", "/admin/companies", token=token, json=payload, fallback="Failed to save company"
        )
        return _parse(Company, _unwrap(body, "company"), "Failed to save company")

    def update_company(self, token: str, company_id: str, payload: Dict[str, Any]) -> Company:
        body = self.request(
            "PUT",
            f"/admin/companies/{company_id}",
            token=token,
            json=payload,
            fallback="Failed to save company",
        )
        return _parse(Company, _unwrap(body, "company"), "Failed to save company")

    def delete_company(self, token: str, company_id: str) -> None:
        self.request(
            "DELETE", f"/admin/companies/{company_id}", token=token, fallback="Failed to delete company"
        )


def _unwrap(body: Any, key: str) -> Dict[str, Any]:
    """Accept both bare records and {"<key>": record} envelopes."""
    if isinstance(body, dict) and isinstance(body.get(key), dict):
        return body[key]
    return body if isinstance(body, dict) else {}


def _unwrap_list(body: Any, key: str) -> List[Any]:
    """Accept both bare lists and {"<key>": [...]} envelopes."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    return []


def _parse(model: Type[M], data: Any, fallback: str) -> M:
    """Validate one backend record; a malformed one fails like a bad gateway."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Malformed {model.__name__} from backend: {e.error_count()} error(s)")
        raise ApiError(502, fallback) from e


def _parse_list(model: Type[M], items: List[Any], fallback: str) -> List[M]:
    return [_parse(model, item, fallback) for item in items]


def _maybe(model: Type[M], body: Dict[str, Any], fallback: str) -> Optional[M]:
    if not body or not (body.get("_id") or body.get("id")):
        return None
    return _parse(model, body, fallback)
