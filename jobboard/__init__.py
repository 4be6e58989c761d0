"""
Job Board UI - Flask + HTMX front-end for a job board REST API.

Provides the public job listing and detail pages, candidate applications,
and role dashboards for candidates, recruiters and admins.
"""
