"""
Flask application for the Job Board UI.

Server-rendered pages for the public job listing and detail views plus the
candidate apply flow. Role dashboards live in dashboard.py and the profile
form in account.py. Every entity is read from and written to the backend
REST API through BackendClient; identity is delegated to Clerk.

Stack: Flask + HTMX + Tailwind CSS (CDN)
"""

import logging
import os
from typing import List, Optional, Tuple

from flask import Flask, g, jsonify, redirect, render_template, request, session, url_for

from .api_client import BackendClient
from .config import Settings, load_settings
from .detail import SavedToggle, load_job_detail
from .errors import ApiError, AuthenticationError, ConfigurationError, FormValidationError
from .extensions import (
    EXTENSION_KEY,
    get_client,
    get_identity,
    get_settings,
    get_view_state,
    is_htmx,
    reset_view_state,
)
from .filters import SORT_OPTIONS, JobFilters
from .forms import ApplicationForm
from .identity import (
    ANONYMOUS,
    SESSION_COOKIE,
    VIEWER_CACHE_KEY,
    ClerkIdentity,
    Viewer,
    current_viewer,
    load_viewer,
    login_required,
    role_required,
    sign_in_url,
)
from .listing import JobListing, next_filters
from .models import JOB_CATEGORIES, LEVEL_LABELS
from .notifications import deliver, get_notifier, pending_toasts
from .pagination import ELLIPSIS, page_window
from .state import ViewStateRegistry
from .version import __version__

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

FEATURED_JOB_COUNT = 3
TRUSTED_COMPANIES = ["Microsoft", "Walmart", "Accenture", "Google", "Amazon", "Netflix"]

# Endpoints served without resolving the viewer
ANONYMOUS_ENDPOINTS = {"static", "health"}


def nav_links(viewer: Viewer) -> List[Tuple[str, str]]:
    """(label, url) pairs for the header navigation."""
    links = [("Home", url_for("index")), ("Jobs", url_for("jobs"))]
    if viewer.is_authenticated:
        links.append(("Dashboard", url_for("dashboard")))
        links.append(("Profile", url_for("account.profile")))
    return links


def create_app(settings: Optional[Settings] = None) -> Flask:
    """
    Build the Flask app.

    Args:
        settings: Explicit configuration (tests); read from the environment
            when omitted.

    A missing or malformed required setting does not stop the app from
    starting: every route then renders the configuration error page.
    """
    app = Flask(__name__)

    if settings is None:
        try:
            settings = load_settings()
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return _configuration_error_app(app, e)

    logging.getLogger().setLevel(settings.log_level.upper())
    _configure_session(app, settings)

    app.extensions[EXTENSION_KEY] = {
        "settings": settings,
        "client": BackendClient(settings.api_base, timeout=settings.request_timeout),
        "identity": ClerkIdentity(settings.clerk_jwks_url),
        "registry": ViewStateRegistry(),
    }

    from .account import account_bp
    from .dashboard import dashboard_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(account_bp)

    _register_hooks(app)
    _register_routes(app)
    _register_error_handlers(app)

    logger.info(f"Job Board UI {__version__} ready ({settings.environment})")
    return app


def _configuration_error_app(app: Flask, error: ConfigurationError) -> Flask:
    app.secret_key = os.urandom(24).hex()

    @app.before_request
    def configuration_error():
        return render_template("config_error.html", error=error, version=__version__), 500

    return app


def _configure_session(app: Flask, settings: Settings) -> None:
    secret_key = settings.flask_secret_key
    if not secret_key:
        if settings.is_production:
            raise RuntimeError(
                "CRITICAL: FLASK_SECRET_KEY not set. "
                "Sessions would be invalidated on every restart."
            )
        logger.warning("FLASK_SECRET_KEY not set. Generating random key (sessions will not persist between restarts)")
        secret_key = os.urandom(24).hex()
    app.secret_key = secret_key

    # Cookie security settings
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = settings.is_production
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["PERMANENT_SESSION_LIFETIME"] = 60 * 60 * 24 * 7  # 7 days
    app.config["MAX_CONTENT_LENGTH"] = 5 * 1024 * 1024  # resume uploads


def _register_hooks(app: Flask) -> None:

    @app.before_request
    def attach_viewer():
        """Resolve who is asking, once per request."""
        if request.endpoint in ANONYMOUS_ENDPOINTS:
            g.viewer = ANONYMOUS
            return None
        g.viewer = load_viewer(get_identity(), get_client())
        return None

    @app.after_request
    def deliver_notifications(response):
        return deliver(response, is_htmx())

    @app.context_processor
    def inject_globals():
        """Inject viewer, navigation and display helpers into all templates."""
        settings = get_settings()
        viewer = current_viewer()
        return {
            "version": __version__,
            "viewer": viewer,
            "nav_links": nav_links(viewer),
            "clerk_publishable_key": settings.clerk_publishable_key,
            "clerk_frontend_api": settings.clerk_frontend_api,
            "sign_in_url": sign_in_url,
            "pending_toasts": pending_toasts,
            "page_window": page_window,
            "ellipsis": ELLIPSIS,
            "sort_options": SORT_OPTIONS,
            "job_categories": JOB_CATEGORIES,
            "job_levels": LEVEL_LABELS,
        }


def _register_routes(app: Flask) -> None:

    # ========================================================================
    # Public pages
    # ========================================================================

    @app.route("/")
    def index():
        """Home page: search box and the newest jobs."""
        featured = []
        try:
            featured = get_client().list_jobs({"limit": str(FEATURED_JOB_COUNT)}).jobs
        except ApiError as e:
            logger.warning(f"Featured jobs unavailable: {e}")
        return render_template(
            "home.html",
            featured_jobs=featured[:FEATURED_JOB_COUNT],
            trusted_companies=TRUSTED_COMPANIES,
        )

    @app.route("/jobs")
    def jobs():
        """Listing page. The query string is the filter set, so listings are bookmarkable."""
        listing_id = ViewStateRegistry.new_id()
        view = get_view_state().listing_view(listing_id)
        filters = JobFilters.from_query(request.args)
        listing = JobListing(get_client(), view.sequencer, get_notifier())
        result = listing.fetch(filters)
        view.filters = filters
        return render_template("jobs.html", filters=filters, result=result, listing_id=listing_id)

    @app.route("/partials/job-results", methods=["GET"])
    def job_results_partial():
        """
        HTMX partial: result rows and pagination for the current filter set.

        Each listing page echoes its own id in ``listing`` so two open tabs
        sequence their requests independently. A response overtaken by a
        newer request from the same page returns 204 so HTMX leaves the newer
        results in place.
        """
        listing_id = request.args.get("listing") or ViewStateRegistry.new_id()
        view = get_view_state().listing_view(listing_id)
        filters = next_filters(view.filters, request.args, request.args.get("changed"))
        listing = JobListing(get_client(), view.sequencer, get_notifier())
        result = listing.fetch(filters)
        if result.stale:
            return "", 204

        view.filters = filters
        response = app.make_response(
            render_template(
                "partials/job_results.html",
                filters=filters,
                result=result,
                oob=True,
                listing_id=listing_id,
            )
        )
        query = filters.to_query()
        push_url = url_for("jobs", **query)
        response.headers["HX-Push-Url"] = push_url
        return response

    @app.route("/jobs/<slug>")
    def job_detail(slug: str):
        """Job detail page with save and apply controls."""
        viewer = current_viewer()
        detail = load_job_detail(get_client(), viewer, slug)
        if detail is None:
            return render_template("error.html", error="Job not found"), 404
        return render_template(
            "job_detail.html",
            detail=detail,
            job=detail.job,
            apply_mode=detail.apply_mode(viewer),
            form=ApplicationForm(detail.job),
        )

    @app.route("/jobs/<job_id>/save", methods=["POST"])
    @login_required
    def toggle_saved(job_id: str):
        """HTMX partial: flip the saved flag, returning the updated button."""
        viewer = current_viewer()
        saved = request.form.get("saved", "false").lower() == "true"
        toggle = SavedToggle(get_client(), viewer.token, job_id, saved=saved)
        toggle.toggle(get_notifier())
        return render_template("partials/save_button.html", job_id=job_id, is_saved=toggle.saved)

    @app.route("/jobs/<slug>/apply", methods=["GET", "POST"])
    @role_required("candidate")
    def apply(slug: str):
        """Application form for one job; submitting twice is a no-op."""
        viewer = current_viewer()
        client = get_client()
        notifier = get_notifier()

        detail = load_job_detail(client, viewer, slug)
        if detail is None:
            return render_template("error.html", error="Job not found"), 404

        if request.method == "GET":
            return _render_apply(detail, ApplicationForm(detail.job))

        form = ApplicationForm(detail.job, request.form, request.files.get("resume"))
        try:
            result = form.submit(client, viewer.token, has_applied=detail.has_applied)
        except FormValidationError:
            return _render_apply(detail, form)
        except ApiError as e:
            notifier.error(e.message)
            return _render_apply(detail, form)

        if result is None:
            notifier.info("You have already applied for this job")
        else:
            notifier.success("Application submitted successfully!")
        detail.has_applied = True

        if not is_htmx():
            return redirect(url_for("job_detail", slug=detail.job.path_key))
        return _render_apply(detail, form)

    def _render_apply(detail, form: ApplicationForm):
        template = "partials/apply_form.html" if is_htmx() else "job_detail.html"
        return render_template(
            template,
            detail=detail,
            job=detail.job,
            apply_mode=detail.apply_mode(current_viewer()),
            form=form,
        )

    # ========================================================================
    # Identity
    # ========================================================================

    @app.route("/sign-in")
    def sign_in():
        """Mount the identity provider's sign-in widget."""
        redirect_url = request.args.get("redirect_url") or url_for("dashboard")
        if not redirect_url.startswith("/") or redirect_url.startswith("//"):
            redirect_url = url_for("dashboard")
        if current_viewer().is_authenticated:
            return redirect(redirect_url)
        return render_template("sign_in.html", redirect_url=redirect_url)

    @app.route("/sign-out", methods=["GET", "POST"])
    def sign_out():
        """Clear the local session, then let the provider end its own."""
        reset_view_state()
        session.clear()
        response = app.make_response(render_template("sign_out.html"))
        response.delete_cookie(SESSION_COOKIE)
        return response

    @app.route("/dashboard")
    @login_required
    def dashboard():
        """Send the viewer to the dashboard for their role."""
        role = current_viewer().role
        if role in ("candidate", "recruiter", "admin"):
            return redirect(url_for(f"dashboard.{role}"))
        return render_template(
            "error.html",
            error="We could not determine your account role. Please sign out and sign in again.",
        ), 403

    # ========================================================================
    # Health
    # ========================================================================

    @app.route("/health", methods=["GET"])
    def health():
        """Public liveness endpoint for external monitoring."""
        return jsonify({"status": "healthy", "version": __version__})


def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(403)
    def forbidden(e):
        return render_template("error.html", error="You do not have access to this page."), 403

    @app.errorhandler(404)
    def not_found(e):
        return render_template("error.html", error="Page not found"), 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f"Unhandled error on {request.path}: {e}")
        return render_template("error.html", error="Something went wrong. Please try again."), 500

    @app.errorhandler(AuthenticationError)
    def session_expired(e):
        session.pop(VIEWER_CACHE_KEY, None)
        if is_htmx():
            return jsonify({"error": "Not authenticated"}), 401
        return redirect(sign_in_url(request.full_path.rstrip("?")))

    @app.errorhandler(ApiError)
    def backend_error(e: ApiError):
        logger.warning(f"Backend error on {request.path}: {e}")
        if e.is_auth_error and not is_htmx():
            session.pop(VIEWER_CACHE_KEY, None)
            return redirect(sign_in_url(request.full_path.rstrip("?")))
        if is_htmx():
            get_notifier().error(e.message)
            return "", 204
        status = e.status_code if e.status_code >= 400 else 502
        return render_template("error.html", error=e.message), status


app = create_app()


# ============================================================================
# Application Entry Point
# ============================================================================

if __name__ == "__main__":
    port = int(os.getenv("FLASK_PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    logger.info(f"Starting Job Board UI on http://localhost:{port}")
    app.run(host="0.0.0.0", port=port, debug=debug)
