"""
Profile blueprint: the signed-in user's own account.
"""

import logging

from flask import Blueprint, render_template, request, session

from .errors import ApiError, FormValidationError
from .extensions import get_client, get_view_state, is_htmx
from .forms import ProfileForm
from .identity import VIEWER_CACHE_KEY, current_viewer, login_required
from .notifications import get_notifier

logger = logging.getLogger(__name__)

account_bp = Blueprint("account", __name__)


@account_bp.route("/profile", methods=["GET", "POST"])
@login_required
def profile():
    """Show and update name, phone and skills."""
    viewer = current_viewer()
    client = get_client()
    stores = get_view_state()
    notifier = get_notifier()

    if request.method == "GET" or stores.profile is None:
        stores.profile = client.get_me(viewer.token)

    if request.method == "GET":
        return render_template("profile.html", form=ProfileForm(stores.profile), user=stores.profile)

    form = ProfileForm(stores.profile, request.form)
    try:
        result = form.submit(client, viewer.token)
    except FormValidationError:
        return _render(form, stores.profile)
    except ApiError as e:
        notifier.error(e.message)
        return _render(form, stores.profile)

    stores.profile = result.entity
    _refresh_cached_profile(result.entity)
    notifier.success("Profile updated successfully!")
    return _render(form, result.entity)


def _render(form: ProfileForm, user):
    template = "partials/profile_form.html" if is_htmx() else "profile.html"
    return render_template(template, form=form, user=user)


def _refresh_cached_profile(user) -> None:
    """Keep the header's display name in step with the saved profile."""
    cached = session.get(VIEWER_CACHE_KEY)
    if not cached:
        return
    cached["profile"] = {"name": user.name, "email": user.email, "avatar": user.avatar}
    session[VIEWER_CACHE_KEY] = cached
