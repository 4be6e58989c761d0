"""
Role dashboards blueprint.

Pages:
    /candidate  - applications and saved jobs
    /recruiter  - own postings, received applications, stats
    /admin      - metrics, all jobs, users, companies

Row actions are HTMX POSTs that answer with out-of-band swaps for just the
rows they touched. Job create/edit is shared by recruiters and admins under
/<scope>/jobs/...
"""

import logging
from typing import Optional, Type

from flask import Blueprint, abort, render_template, request

from .dashboard_state import (
    JOB_NOT_FOUND,
    AdminDashboard,
    CandidateDashboard,
    Dashboard,
    Patch,
    RecruiterDashboard,
)
from .errors import ApiError, AuthenticationError, FormValidationError
from .extensions import get_client, get_view_state
from .forms import CompanyForm, JobForm
from .identity import current_viewer, login_required, role_required
from .models import USER_ROLES
from .notifications import get_notifier

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint("dashboard", __name__)

# Dashboards that manage job postings, by URL scope
JOB_SCOPES = {"recruiter": RecruiterDashboard, "admin": AdminDashboard}

ROW_TEMPLATES = {
    "jobs": "partials/job_row.html",
    "companies": "partials/company_row.html",
    "users": "partials/user_row.html",
    "saved": "partials/saved_row.html",
}


def _dashboard(cls: Type[Dashboard]) -> Dashboard:
    viewer = current_viewer()
    if not viewer.token:
        raise AuthenticationError("Session expired")
    return cls(get_client(), viewer.token, get_view_state(), get_notifier())


def _scoped(scope: str) -> Dashboard:
    """Dashboard for a job-management scope, checking the viewer's role."""
    cls = JOB_SCOPES.get(scope)
    if cls is None:
        abort(404)
    if not current_viewer().has_role(scope):
        abort(403)
    return _dashboard(cls)


def _patch_response(patch: Patch, scope: str, dash: Optional[Dashboard] = None):
    """
    Out-of-band swaps for a Patch.

    The primary swap target (if any) receives an empty body, which is how a
    submitted form closes its modal.
    """
    return render_template(
        "partials/patch.html",
        patch=patch,
        scope=scope,
        row_templates=ROW_TEMPLATES,
        dash=dash,
    )


# ============================================================================
# Role pages
# ============================================================================

@dashboard_bp.route("/candidate")
@role_required("candidate")
def candidate():
    """Candidate dashboard: applications and saved jobs."""
    dash = _dashboard(CandidateDashboard)
    dash.load()
    return render_template(
        "candidate_dashboard.html",
        dash=dash,
        tab=request.args.get("tab", "applications"),
    )


@dashboard_bp.route("/recruiter")
@role_required("recruiter")
def recruiter():
    """Recruiter dashboard: own postings and the applications they received."""
    dash = _dashboard(RecruiterDashboard)
    dash.load()
    return render_template(
        "recruiter_dashboard.html",
        dash=dash,
        scope="recruiter",
        tab=request.args.get("tab", "jobs"),
    )


@dashboard_bp.route("/admin")
@role_required("admin")
def admin():
    """Admin dashboard: platform metrics and every entity."""
    dash = _dashboard(AdminDashboard)
    dash.load()
    return render_template(
        "admin_dashboard.html",
        dash=dash,
        scope="admin",
        tab=request.args.get("tab", "overview"),
        roles=USER_ROLES,
    )


# ============================================================================
# Candidate actions
# ============================================================================

@dashboard_bp.route("/candidate/saved/<job_id>/remove", methods=["POST"])
@role_required("candidate")
def unsave(job_id: str):
    dash = _dashboard(CandidateDashboard)
    return _patch_response(dash.unsave(job_id), "candidate", dash)


# ============================================================================
# Job management (recruiter and admin)
# ============================================================================

@dashboard_bp.route("/<scope>/jobs/new", methods=["GET"])
@dashboard_bp.route("/<scope>/jobs/<job_id>/edit", methods=["GET"])
@login_required
def job_form(scope: str, job_id: Optional[str] = None):
    """HTMX partial: job form in the modal, blank or pre-filled."""
    dash = _scoped(scope)
    job = None
    if job_id is not None:
        job = dash.stores.jobs.get(job_id)
        if job is None:
            dash.notifier.error(JOB_NOT_FOUND)
            return "", 204
    form = JobForm(job, is_admin=scope == "admin")
    return _render_job_form(form, scope, dash)


@dashboard_bp.route("/<scope>/jobs", methods=["POST"])
@dashboard_bp.route("/<scope>/jobs/<job_id>", methods=["POST"])
@login_required
def save_job(scope: str, job_id: Optional[str] = None):
    """Create or update a job, then patch its row."""
    dash = _scoped(scope)
    job = dash.stores.jobs.get(job_id) if job_id is not None else None
    if job_id is not None and job is None:
        dash.notifier.error(JOB_NOT_FOUND)
        return "", 204

    form = JobForm(job, request.form, is_admin=scope == "admin")
    try:
        result = form.submit(get_client(), dash.token)
    except FormValidationError as e:
        logger.info(f"Job form rejected: {e}")
        return _render_job_form(form, scope, dash)
    except ApiError as e:
        dash.notifier.error(e.message)
        return _render_job_form(form, scope, dash)

    return _patch_response(dash.apply_form_result(result, "jobs"), scope, dash)


def _render_job_form(form: JobForm, scope: str, dash: Dashboard):
    companies = list(dash.stores.companies) if scope == "admin" else []
    recruiters = dash.recruiters() if isinstance(dash, AdminDashboard) else []
    return render_template(
        "partials/job_form.html",
        form=form,
        scope=scope,
        companies=companies,
        recruiters=recruiters,
    )


@dashboard_bp.route("/<scope>/jobs/<job_id>/visibility", methods=["POST"])
@login_required
def toggle_job(scope: str, job_id: str):
    dash = _scoped(scope)
    return _patch_response(dash.toggle_visibility(job_id), scope, dash)


@dashboard_bp.route("/<scope>/jobs/<job_id>/delete", methods=["POST"])
@login_required
def delete_job(scope: str, job_id: str):
    dash = _scoped(scope)
    return _patch_response(dash.delete_job(job_id), scope, dash)


# ============================================================================
# Admin: users and companies
# ============================================================================

@dashboard_bp.route("/admin/users/<user_id>/role", methods=["POST"])
@role_required("admin")
def change_role(user_id: str):
    dash = _dashboard(AdminDashboard)
    patch = dash.change_role(user_id, request.form.get("role", ""))
    if patch.empty:
        # Put the select back to the stored role
        user = dash.stores.users.get(user_id)
        if user is not None:
            patch = Patch(upserted={"users": [user]})
    return _patch_response(patch, "admin", dash)


@dashboard_bp.route("/admin/companies/new", methods=["GET"])
@dashboard_bp.route("/admin/companies/<company_id>/edit", methods=["GET"])
@role_required("admin")
def company_form(company_id: Optional[str] = None):
    """HTMX partial: company form in the modal."""
    dash = _dashboard(AdminDashboard)
    company = None
    if company_id is not None:
        company = dash.stores.companies.get(company_id)
        if company is None:
            dash.notifier.error("Company not found. Reload the dashboard and try again.")
            return "", 204
    return render_template("partials/company_form.html", form=CompanyForm(company))


@dashboard_bp.route("/admin/companies", methods=["POST"])
@dashboard_bp.route("/admin/companies/<company_id>", methods=["POST"])
@role_required("admin")
def save_company(company_id: Optional[str] = None):
    dash = _dashboard(AdminDashboard)
    company = dash.stores.companies.get(company_id) if company_id is not None else None
    if company_id is not None and company is None:
        dash.notifier.error("Company not found. Reload the dashboard and try again.")
        return "", 204

    form = CompanyForm(company, request.form)
    try:
        result = form.submit(get_client(), dash.token)
    except FormValidationError as e:
        logger.info(f"Company form rejected: {e}")
        return render_template("partials/company_form.html", form=form)
    except ApiError as e:
        dash.notifier.error(e.message)
        return render_template("partials/company_form.html", form=form)

    return _patch_response(dash.apply_form_result(result, "companies"), "admin", dash)


@dashboard_bp.route("/admin/companies/<company_id>/delete", methods=["POST"])
@role_required("admin")
def delete_company(company_id: str):
    """Delete a company; its job rows go with it."""
    dash = _dashboard(AdminDashboard)
    return _patch_response(dash.delete_company(company_id), "admin", dash)
