"""
Pytest fixtures for the job board UI.

The backend is never contacted: every test app gets a MagicMock in place of
its BackendClient, and signed-in clients swap the identity provider for a
stub that always reports the same user.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment BEFORE any imports so the module-level app can load its config
TEST_PUBLISHABLE_KEY = "pk_test_Y2xlcmsuZXhhbXBsZS5jb20k"  # clerk.example.com$
os.environ["CLERK_PUBLISHABLE_KEY"] = TEST_PUBLISHABLE_KEY
os.environ["API_URL"] = "https://api.example.com"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "testing"

from jobboard.api_client import BackendClient  # noqa: E402
from jobboard.config import Settings  # noqa: E402
from jobboard.extensions import EXTENSION_KEY  # noqa: E402
from jobboard.identity import IdentityUser  # noqa: E402
from jobboard.models import JobPage, Metrics  # noqa: E402

from factories import make_user  # noqa: E402

LIST_READS = (
    "recruiter_jobs",
    "my_applications",
    "recruiter_applications",
    "saved_jobs",
    "admin_jobs",
    "admin_users",
    "admin_companies",
)


@pytest.fixture
def settings():
    """Explicit configuration, independent of the process environment."""
    return Settings(
        clerk_publishable_key=TEST_PUBLISHABLE_KEY,
        api_url="https://api.example.com/",
        flask_secret_key="test-secret-key",
        environment="testing",
    )


@pytest.fixture
def mock_client():
    """BackendClient stand-in with empty, well-typed defaults."""
    client = MagicMock(spec=BackendClient)
    for name in LIST_READS:
        getattr(client, name).return_value = []
    client.list_jobs.return_value = JobPage()
    client.get_job.return_value = None
    client.is_saved.return_value = False
    client.admin_metrics.return_value = Metrics()
    client.get_me.return_value = make_user()
    client.toggle_job_visibility.return_value = None
    client.admin_toggle_job_visibility.return_value = None
    client.update_user_role.return_value = None
    return client


@pytest.fixture
def app(settings, mock_client):
    """Flask app fixture with test configuration."""
    from jobboard.app import create_app

    app = create_app(settings)
    app.config["TESTING"] = True
    app.extensions[EXTENSION_KEY]["client"] = mock_client
    return app


@pytest.fixture
def client(app):
    """Flask test client for an anonymous visitor."""
    return app.test_client()


@pytest.fixture
def sign_in(app, mock_client):
    """
    Factory for a test client signed in with the given role.

    The identity provider is replaced by a stub; the role comes from the
    mocked GET /auth/me like it would in production.
    """
    def _sign_in(role="candidate", user_id="user_1"):
        identity = MagicMock()
        identity.current_user.return_value = IdentityUser(
            id=user_id,
            session_id=f"sess_{user_id}",
            name="Test User",
            email="test@example.com",
        )
        identity.get_token.return_value = "test-token"
        app.extensions[EXTENSION_KEY]["identity"] = identity
        mock_client.get_me.return_value = make_user(role=role)
        return app.test_client()

    return _sign_in


@pytest.fixture
def candidate_client(sign_in):
    return sign_in("candidate")


@pytest.fixture
def recruiter_client(sign_in):
    return sign_in("recruiter")


@pytest.fixture
def admin_client(sign_in):
    return sign_in("admin")
