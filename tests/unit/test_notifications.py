"""
Unit tests for jobboard/notifications.py - toast delivery.
"""

import json

from flask import Response, get_flashed_messages

from jobboard.notifications import Notifier, deliver, get_notifier, pending_toasts


class TestNotifier:

    def test_drain_empties(self):
        notifier = Notifier()
        notifier.success("Saved")
        notifier.error("Nope")

        assert notifier.drain() == [("success", "Saved"), ("error", "Nope")]
        assert len(notifier) == 0

    def test_outside_request_is_throwaway(self):
        assert get_notifier() is not get_notifier()


class TestDeliver:

    def test_htmx_response_gets_trigger_header(self, app):
        with app.test_request_context("/"):
            get_notifier().success("Job saved")

            response = deliver(Response(""), is_htmx=True)

        triggers = json.loads(response.headers["HX-Trigger"])
        assert triggers == {"toast": [{"level": "success", "message": "Job saved"}]}

    def test_existing_trigger_is_merged(self, app):
        with app.test_request_context("/"):
            get_notifier().error("Failed")
            response = Response("")
            response.headers["HX-Trigger"] = "jobSaved"

            deliver(response, is_htmx=True)

        triggers = json.loads(response.headers["HX-Trigger"])
        assert triggers["jobSaved"] is None
        assert triggers["toast"][0]["level"] == "error"

    def test_full_page_response_flashes(self, app):
        with app.test_request_context("/"):
            get_notifier().info("You have already applied for this job")

            deliver(Response(""), is_htmx=False)

            assert get_flashed_messages(with_categories=True) == [
                ("info", "You have already applied for this job")
            ]

    def test_nothing_pending(self, app):
        with app.test_request_context("/"):
            get_notifier()
            response = deliver(Response(""), is_htmx=True)

        assert "HX-Trigger" not in response.headers

    def test_pending_toasts_are_rendered_once(self, app):
        with app.test_request_context("/"):
            get_notifier().success("Profile updated successfully!")

            assert pending_toasts() == [("success", "Profile updated successfully!")]
            assert pending_toasts() == []
