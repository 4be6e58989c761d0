"""
Dashboard view models for the candidate, recruiter and admin pages.

On mount each dashboard reads its datasets in parallel. A failed read gives
an empty dataset and one error notification; the other datasets still
render. Row actions send one request each and, on success, patch only the
affected rows of the viewer's EntityStores. Every action returns a Patch
naming the rows to re-render or remove, so the HTTP layer can update just
those rows of the page.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Tuple

from .api_client import BackendClient
from .errors import ApiError
from .forms import FormResult
from .models import USER_ROLES, Application, Company, JobPosting, Metrics, SavedJob, UserAccount
from .notifications import Notifier
from .state import EntityStores

logger = logging.getLogger(__name__)

MAX_PARALLEL_READS = 4

JOB_NOT_FOUND = "Job not found. Reload the dashboard and try again."


@dataclass
class Reader:
    """One dataset read: how to fetch it and what to show if it fails."""

    fetch: Callable[[], Any]
    default: Callable[[], Any] = list
    label: str = "data"


@dataclass
class LoadResult:
    data: Dict[str, Any] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.failed) and len(self.failed) == len(self.data)


def load_parallel(readers: Mapping[str, Reader], notifier: Notifier) -> LoadResult:
    """
    Run every reader concurrently.

    Failures are independent: each failed reader contributes its default and
    exactly one notification.
    """
    result = LoadResult()
    if not readers:
        return result

    with ThreadPoolExecutor(max_workers=min(MAX_PARALLEL_READS, len(readers))) as executor:
        futures = {name: executor.submit(reader.fetch) for name, reader in readers.items()}

    for name, future in futures.items():
        reader = readers[name]
        try:
            result.data[name] = future.result()
        except ApiError as e:
            logger.warning(f"Dashboard read '{name}' failed: {e}")
            result.data[name] = reader.default()
            result.failed.append(name)
            notifier.error(f"Failed to load {reader.label}: {e.message}")
    return result


@dataclass
class Patch:
    """
    Rows changed by one action.

    upserted: collection name -> records to (re-)render
    removed: collection name -> ids whose rows disappear
    created: collection name -> ids among upserted that are new rows
    """

    upserted: Dict[str, List[Any]] = field(default_factory=dict)
    removed: Dict[str, List[str]] = field(default_factory=dict)
    created: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.upserted and not self.removed


NO_CHANGE = Patch()


class Dashboard:
    """Shared plumbing for the role dashboards."""

    def __init__(self, client: BackendClient, token: str, stores: EntityStores, notifier: Notifier):
        self.client = client
        self.token = token
        self.stores = stores
        self.notifier = notifier
        self.load_result = LoadResult()

    def readers(self) -> Dict[str, Reader]:
        raise NotImplementedError

    def load(self) -> LoadResult:
        self.load_result = load_parallel(self.readers(), self.notifier)
        self.apply_loaded(self.load_result.data)
        return self.load_result

    def apply_loaded(self, data: Dict[str, Any]) -> None:
        for name, items in data.items():
            collection = getattr(self.stores, name, None)
            if collection is not None:
                collection.replace_all(items)

    def _attempt(self, action: Callable[[], Any]) -> Tuple[bool, Any]:
        """Run one request. Returns (ok, value); failures are reported, not raised."""
        try:
            return True, action()
        except ApiError as e:
            self.notifier.error(e.message)
            return False, None

    def apply_form_result(self, result: FormResult, collection: str) -> Patch:
        """Patch the list after a job/company form succeeds."""
        is_new = getattr(self.stores, collection).upsert(result.entity)
        noun = "Job" if collection == "jobs" else "Company"
        self.notifier.success(f"{noun} {result.action} successfully!")
        created = {collection: [result.entity.id]} if is_new else {}
        return Patch(upserted={collection: [result.entity]}, created=created)

    def _delete_job(self, job_id: str, delete: Callable[[str, str], None]) -> Patch:
        ok, _ = self._attempt(lambda: delete(self.token, job_id))
        if not ok:
            return NO_CHANGE
        self.stores.jobs.remove(job_id)
        self.notifier.success("Job deleted successfully!")
        return Patch(removed={"jobs": [job_id]})


class CandidateDashboard(Dashboard):

    def readers(self) -> Dict[str, Reader]:
        return {
            "applications": Reader(lambda: self.client.my_applications(self.token), label="applications"),
            "saved": Reader(lambda: self.client.saved_jobs(self.token), label="saved jobs"),
        }

    @property
    def applications(self) -> List[Application]:
        return list(self.stores.applications)

    @property
    def saved_jobs(self) -> List[SavedJob]:
        return list(self.stores.saved)

    def status_counts(self) -> Dict[str, int]:
        counts = {"pending": 0, "accepted": 0, "rejected": 0}
        for application in self.stores.applications:
            counts[application.status] = counts.get(application.status, 0) + 1
        return counts

    def unsave(self, job_id: str) -> Patch:
        ok, _ = self._attempt(lambda: self.client.unsave_job(self.token, job_id))
        if not ok:
            return NO_CHANGE
        removed = self.stores.saved.remove_where(lambda s: s.job_id == job_id)
        self.notifier.success("Job removed from saved")
        return Patch(removed={"saved": [s.id for s in removed]})


class RecruiterDashboard(Dashboard):

    def readers(self) -> Dict[str, Reader]:
        return {
            "jobs": Reader(lambda: self.client.recruiter_jobs(self.token), label="your jobs"),
            "applications": Reader(
                lambda: self.client.recruiter_applications(self.token), label="applications"
            ),
        }

    @property
    def jobs(self) -> List[JobPosting]:
        return list(self.stores.jobs)

    @property
    def applications(self) -> List[Application]:
        return list(self.stores.applications)

    def stats(self) -> Dict[str, int]:
        jobs = list(self.stores.jobs)
        return {
            "total_jobs": len(jobs),
            "active_jobs": sum(1 for j in jobs if j.is_visible),
            "applications": len(self.stores.applications),
        }

    def delete_job(self, job_id: str) -> Patch:
        return self._delete_job(job_id, self.client.delete_job)

    def toggle_visibility(self, job_id: str) -> Patch:
        job = self.stores.jobs.get(job_id)
        if job is None:
            self.notifier.error(JOB_NOT_FOUND)
            return NO_CHANGE
        current = job.is_visible
        ok, updated = self._attempt(
            lambda: self.client.toggle_job_visibility(self.token, job_id, not current)
        )
        if not ok:
            return NO_CHANGE
        if updated is None:
            updated = job.model_copy(update={"is_visible": not current})
        self.stores.jobs.upsert(updated)
        self.notifier.success(f"Job {'published' if updated.is_visible else 'hidden'} successfully")
        return Patch(upserted={"jobs": [updated]})


class AdminDashboard(Dashboard):

    def readers(self) -> Dict[str, Reader]:
        return {
            "metrics": Reader(lambda: self.client.admin_metrics(self.token), default=Metrics, label="metrics"),
            "jobs": Reader(lambda: self.client.admin_jobs(self.token), label="jobs"),
            "users": Reader(lambda: self.client.admin_users(self.token), label="users"),
            "companies": Reader(lambda: self.client.admin_companies(self.token), label="companies"),
        }

    @property
    def metrics(self) -> Metrics:
        return self.load_result.data.get("metrics") or Metrics()

    @property
    def jobs(self) -> List[JobPosting]:
        return list(self.stores.jobs)

    @property
    def users(self) -> List[UserAccount]:
        return list(self.stores.users)

    @property
    def companies(self) -> List[Company]:
        return list(self.stores.companies)

    def toggle_visibility(self, job_id: str) -> Patch:
        job = self.stores.jobs.get(job_id)
        ok, updated = self._attempt(lambda: self.client.admin_toggle_job_visibility(self.token, job_id))
        if not ok:
            return NO_CHANGE
        if updated is None:
            if job is None:
                return NO_CHANGE
            updated = job.model_copy(update={"is_visible": not job.is_visible})
        self.stores.jobs.upsert(updated)
        self.notifier.success(
            f"Job {'activated' if updated.is_visible else 'deactivated'} successfully!"
        )
        return Patch(upserted={"jobs": [updated]})

    def delete_job(self, job_id: str) -> Patch:
        return self._delete_job(job_id, self.client.admin_delete_job)

    def change_role(self, user_id: str, role: str) -> Patch:
        if role not in USER_ROLES:
            self.notifier.error(f"Unknown role: {role}")
            return NO_CHANGE
        ok, updated = self._attempt(lambda: self.client.update_user_role(self.token, user_id, role))
        if not ok:
            return NO_CHANGE
        if updated is None:
            user = self.stores.users.get(user_id)
            if user is None:
                return NO_CHANGE
            updated = user.model_copy(update={"role": role})
        self.stores.users.upsert(updated)
        self.notifier.success("User role updated successfully!")
        return Patch(upserted={"users": [updated]})

    def delete_company(self, company_id: str) -> Patch:
        """
        Delete a company and, locally, every job that belonged to it.

        The backend cascades the delete; the local job rows are dropped to
        match without refetching.
        """
        ok, _ = self._attempt(lambda: self.client.delete_company(self.token, company_id))
        if not ok:
            return NO_CHANGE
        self.stores.companies.remove(company_id)
        removed_jobs = self.stores.jobs.remove_where(lambda j: j.company_id == company_id)
        self.notifier.success("Company deleted successfully!")
        return Patch(removed={"companies": [company_id], "jobs": [j.id for j in removed_jobs]})

    def recruiters(self) -> List[UserAccount]:
        return [u for u in self.stores.users if u.role == "recruiter"]


DASHBOARDS = {
    "candidate": CandidateDashboard,
    "recruiter": RecruiterDashboard,
    "admin": AdminDashboard,
}
