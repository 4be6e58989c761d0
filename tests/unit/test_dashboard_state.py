"""
Unit tests for jobboard/dashboard_state.py - parallel loads and row patches.
"""

from unittest.mock import MagicMock

import pytest

from jobboard.api_client import BackendClient
from jobboard.dashboard_state import (
    NO_CHANGE,
    AdminDashboard,
    CandidateDashboard,
    RecruiterDashboard,
)
from jobboard.errors import ApiError
from jobboard.forms import FormResult
from jobboard.models import Metrics
from jobboard.notifications import Notifier
from jobboard.state import EntityStores

from factories import (
    create_mock_response,
    make_application,
    make_company,
    make_job,
    make_saved,
    make_user,
)

BASE = "https://api.example.com/api/v1"


@pytest.fixture
def backend():
    client = MagicMock(spec=BackendClient)
    for name in ("my_applications", "saved_jobs", "recruiter_jobs", "recruiter_applications",
                 "admin_jobs", "admin_users", "admin_companies"):
        getattr(client, name).return_value = []
    client.admin_metrics.return_value = Metrics(totalUsers=3)
    return client


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def stores():
    return EntityStores()


class TestLoad:

    def test_one_failing_read_gives_one_notification(self, backend, stores, notifier):
        """Should keep the other datasets when one read fails."""
        backend.my_applications.side_effect = ApiError(500, "Boom")
        backend.saved_jobs.return_value = [make_saved("s1")]
        dash = CandidateDashboard(backend, "tok", stores, notifier)

        result = dash.load()

        assert result.failed == ["applications"]
        assert not result.all_failed
        assert notifier.drain() == [("error", "Failed to load applications: Boom")]
        assert [s.id for s in dash.saved_jobs] == ["s1"]
        assert dash.applications == []

    def test_all_failed(self, backend, stores, notifier):
        backend.recruiter_jobs.side_effect = ApiError(503, "Down")
        backend.recruiter_applications.side_effect = ApiError(503, "Down")

        result = RecruiterDashboard(backend, "tok", stores, notifier).load()

        assert result.all_failed
        assert len(notifier) == 2

    def test_admin_metrics_default_on_failure(self, backend, stores, notifier):
        backend.admin_metrics.side_effect = ApiError(500, "Boom")
        backend.admin_users.return_value = [make_user("u1")]

        dash = AdminDashboard(backend, "tok", stores, notifier)
        dash.load()

        assert dash.metrics == Metrics()
        assert [u.id for u in dash.users] == ["u1"]

    def test_malformed_payload_fails_only_that_read(self, stores, notifier):
        """Should treat a payload the models reject like any other failed read."""
        payloads = {
            "/admin/metrics": {"totalUsers": 1},
            "/admin/jobs": [{"_id": "j1", "applicantCount": "many"}],
            "/admin/users": [{"_id": "u1", "role": "candidate"}],
            "/admin/companies": [],
        }
        session = MagicMock()
        session.request.side_effect = lambda method, url, **kwargs: create_mock_response(
            200, payloads[url[len(BASE):]]
        )
        backend = BackendClient(BASE, session=session)
        dash = AdminDashboard(backend, "tok", stores, notifier)

        result = dash.load()

        assert result.failed == ["jobs"]
        assert [u.id for u in dash.users] == ["u1"]
        assert dash.jobs == []
        assert notifier.drain() == [("error", "Failed to load jobs: Failed to load jobs")]

    def test_candidate_status_counts(self, backend, stores, notifier):
        backend.my_applications.return_value = [
            make_application("a1", status="pending"),
            make_application("a2", status="accepted"),
            make_application("a3", status="pending"),
        ]
        dash = CandidateDashboard(backend, "tok", stores, notifier)
        dash.load()

        assert dash.status_counts() == {"pending": 2, "accepted": 1, "rejected": 0}


class TestAdminActions:

    def test_delete_company_drops_its_jobs_without_refetch(self, backend, stores, notifier):
        stores.companies.replace_all([make_company("c1"), make_company("c2")])
        stores.jobs.replace_all([
            make_job("j1", company="c1"),
            make_job("j2", company={"_id": "c1", "name": "Acme"}),
            make_job("j3", company="c2"),
        ])
        dash = AdminDashboard(backend, "tok", stores, notifier)

        patch = dash.delete_company("c1")

        assert patch.removed == {"companies": ["c1"], "jobs": ["j1", "j2"]}
        assert stores.companies.keys() == ["c2"]
        assert stores.jobs.keys() == ["j3"]
        backend.admin_jobs.assert_not_called()
        assert notifier.drain() == [("success", "Company deleted successfully!")]

    def test_failed_delete_leaves_state(self, backend, stores, notifier):
        backend.delete_company.side_effect = ApiError(403, "Forbidden")
        stores.companies.replace_all([make_company("c1")])
        stores.jobs.replace_all([make_job("j1", company="c1")])

        patch = AdminDashboard(backend, "tok", stores, notifier).delete_company("c1")

        assert patch is NO_CHANGE
        assert stores.jobs.keys() == ["j1"]
        assert notifier.drain() == [("error", "Forbidden")]

    def test_toggle_uses_returned_job(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1", isVisible=True)])
        backend.admin_toggle_job_visibility.return_value = make_job("j1", isVisible=False)

        patch = AdminDashboard(backend, "tok", stores, notifier).toggle_visibility("j1")

        assert patch.upserted["jobs"][0].is_visible is False
        assert stores.jobs.get("j1").is_visible is False
        assert notifier.drain() == [("success", "Job deactivated successfully!")]

    def test_change_role(self, backend, stores, notifier):
        stores.users.replace_all([make_user("u1", role="candidate")])
        backend.update_user_role.return_value = None

        patch = AdminDashboard(backend, "tok", stores, notifier).change_role("u1", "recruiter")

        backend.update_user_role.assert_called_once_with("tok", "u1", "recruiter")
        assert patch.upserted["users"][0].role == "recruiter"
        assert stores.users.get("u1").role == "recruiter"

    def test_unknown_role_sends_nothing(self, backend, stores, notifier):
        patch = AdminDashboard(backend, "tok", stores, notifier).change_role("u1", "owner")

        assert patch.empty
        backend.update_user_role.assert_not_called()
        assert notifier.drain() == [("error", "Unknown role: owner")]

    def test_admin_delete_job(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1"), make_job("j2")])

        patch = AdminDashboard(backend, "tok", stores, notifier).delete_job("j1")

        backend.admin_delete_job.assert_called_once_with("tok", "j1")
        assert patch.removed == {"jobs": ["j1"]}
        assert stores.jobs.keys() == ["j2"]


class TestRecruiterActions:

    def test_toggle_sends_flipped_flag(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1", isVisible=True)])
        backend.toggle_job_visibility.return_value = None

        patch = RecruiterDashboard(backend, "tok", stores, notifier).toggle_visibility("j1")

        backend.toggle_job_visibility.assert_called_once_with("tok", "j1", False)
        assert patch.upserted["jobs"][0].is_visible is False
        assert notifier.drain() == [("success", "Job hidden successfully")]

    def test_failed_toggle_leaves_row(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1", isVisible=True)])
        backend.toggle_job_visibility.side_effect = ApiError(500, "Failed to update job visibility")

        patch = RecruiterDashboard(backend, "tok", stores, notifier).toggle_visibility("j1")

        assert patch.empty
        assert stores.jobs.get("j1").is_visible is True

    def test_toggle_unknown_job_sends_nothing(self, backend, stores, notifier):
        """Should not guess the current state of a job the dashboard never loaded."""
        patch = RecruiterDashboard(backend, "tok", stores, notifier).toggle_visibility("missing")

        assert patch.empty
        backend.toggle_job_visibility.assert_not_called()
        assert notifier.drain() == [("error", "Job not found. Reload the dashboard and try again.")]

    def test_stats(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1"), make_job("j2", isVisible=False)])
        stores.applications.replace_all([make_application("a1")])

        stats = RecruiterDashboard(backend, "tok", stores, notifier).stats()

        assert stats == {"total_jobs": 2, "active_jobs": 1, "applications": 1}

    def test_form_result_created_row(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1")])
        dash = RecruiterDashboard(backend, "tok", stores, notifier)

        patch = dash.apply_form_result(FormResult(entity=make_job("j2"), action="created"), "jobs")

        assert patch.created == {"jobs": ["j2"]}
        assert stores.jobs.keys() == ["j2", "j1"]
        assert notifier.drain() == [("success", "Job created successfully!")]

    def test_form_result_updated_row(self, backend, stores, notifier):
        stores.jobs.replace_all([make_job("j1"), make_job("j2")])
        dash = RecruiterDashboard(backend, "tok", stores, notifier)

        patch = dash.apply_form_result(FormResult(entity=make_job("j2", title="New"), action="updated"), "jobs")

        assert patch.created == {}
        assert stores.jobs.keys() == ["j1", "j2"]
        assert stores.jobs.get("j2").title == "New"


class TestCandidateActions:

    def test_unsave_removes_matching_rows(self, backend, stores, notifier):
        stores.saved.replace_all([make_saved("s1", job={"_id": "j1"}), make_saved("s2", job="j2")])

        patch = CandidateDashboard(backend, "tok", stores, notifier).unsave("j1")

        backend.unsave_job.assert_called_once_with("tok", "j1")
        assert patch.removed == {"saved": ["s1"]}
        assert stores.saved.keys() == ["s2"]
        assert notifier.drain() == [("success", "Job removed from saved")]
