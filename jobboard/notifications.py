"""
Transient notifications (toasts).

Views push messages onto a Notifier during a request. The app drains it once
the response is ready: full pages get Flask flash messages, HTMX requests get
an HX-Trigger header the page script turns into toasts.
"""

import json
from typing import List, Tuple

from flask import Response, flash, g, get_flashed_messages, has_request_context

SUCCESS = "success"
ERROR = "error"
INFO = "info"


class Notifier:
    """Collects (category, message) pairs for one request."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append((SUCCESS, message))

    def error(self, message: str) -> None:
        self.messages.append((ERROR, message))

    def info(self, message: str) -> None:
        self.messages.append((INFO, message))

    def drain(self) -> List[Tuple[str, str]]:
        messages, self.messages = self.messages, []
        return messages

    def __len__(self) -> int:
        return len(self.messages)


def get_notifier() -> Notifier:
    """Notifier for the current request (a throwaway one outside requests)."""
    if not has_request_context():
        return Notifier()
    if "notifier" not in g:
        g.notifier = Notifier()
    return g.notifier


def pending_toasts() -> List[Tuple[str, str]]:
    """
    Messages to render in the page being built: flashes carried over from a
    redirect plus anything raised while handling this request.
    """
    carried = [(level, message) for level, message in get_flashed_messages(with_categories=True)]
    return carried + get_notifier().drain()


def deliver(response: Response, is_htmx: bool) -> Response:
    """
    Move notifications not yet rendered onto the response.

    Redirects flash them for the next page; HTMX responses carry them in the
    HX-Trigger header.
    """
    if "notifier" not in g:
        return response

    messages = g.notifier.drain()
    if not messages:
        return response

    if is_htmx:
        toasts = [{"level": level, "message": message} for level, message in messages]
        existing = response.headers.get("HX-Trigger")
        triggers = {}
        if existing:
            try:
                triggers = json.loads(existing)
            except ValueError:
                # Plain event name rather than JSON
                triggers = {existing: None}
        triggers["toast"] = toasts
        response.headers["HX-Trigger"] = json.dumps(triggers)
    else:
        for level, message in messages:
            flash(message, level)
    return response
