"""
Job detail view: the job itself, plus the viewer's saved / applied flags.

The flags are separate reads. Either may fail without affecting the page;
a failed read leaves its flag at False.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .api_client import BackendClient
from .errors import ApiError
from .identity import Viewer
from .models import Application, JobPosting
from .notifications import Notifier

logger = logging.getLogger(__name__)


@dataclass
class JobDetail:
    job: JobPosting
    is_saved: bool = False
    has_applied: bool = False

    def apply_mode(self, viewer: Viewer) -> str:
        """
        How the apply control renders.

        "sign-in": prompt to sign in, "applied": disabled,
        "apply": active, "hidden": viewer is not a candidate.
        """
        if not viewer.is_authenticated:
            return "sign-in"
        if not viewer.has_role("candidate"):
            return "hidden"
        return "applied" if self.has_applied else "apply"


def applications_by_job(applications) -> Dict[str, Application]:
    """Index a candidate's applications by job id."""
    index: Dict[str, Application] = {}
    for application in applications:
        job_id = application.job_id
        if job_id:
            index.setdefault(job_id, application)
    return index


def _tolerant(read: Callable[[], bool], what: str) -> bool:
    try:
        return read()
    except ApiError as e:
        logger.warning(f"{what} check failed, assuming False: {e}")
        return False


def load_job_detail(client: BackendClient, viewer: Viewer, slug: str) -> Optional[JobDetail]:
    """
    Load the detail view for slug.

    Returns None when the job does not exist. Errors other than "not found"
    propagate so the page can show its error state.
    """
    job = client.get_job(slug)
    if job is None:
        return None

    detail = JobDetail(job=job)
    if not viewer.is_authenticated:
        return detail

    detail.is_saved = _tolerant(lambda: client.is_saved(viewer.token, job.id), "Saved")

    if viewer.has_role("candidate"):
        detail.has_applied = _tolerant(
            lambda: job.id in applications_by_job(client.my_applications(viewer.token)),
            "Applied",
        )
    return detail


class SavedToggle:
    """
    Saved flag for one job.

    toggle() deletes the association when saved and creates it otherwise,
    then flips the flag, but only once the request has succeeded.
    """

    def __init__(self, client: BackendClient, token: str, job_id: str, saved: bool = False):
        self.client = client
        self.token = token
        self.job_id = job_id
        self.saved = saved

    def toggle(self, notifier: Optional[Notifier] = None) -> bool:
        try:
            if self.saved:
                self.client.unsave_job(self.token, self.job_id)
            else:
                self.client.save_job(self.token, self.job_id)
        except ApiError as e:
            if notifier is not None:
                notifier.error(e.message)
            return self.saved

        self.saved = not self.saved
        if notifier is not None:
            notifier.success("Job saved" if self.saved else "Job removed from saved")
        return self.saved
