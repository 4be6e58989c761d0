#!/usr/bin/env python3
"""
Configuration verification script for Job Board UI deployment.

Checks that all required environment variables are set correctly and that
the backend API answers. Run this before deploying or after configuration
changes:

    python -m jobboard.verify_config
"""

import os
import sys

import requests
from dotenv import load_dotenv

from .config import REQUIRED_VARIABLES, load_settings
from .errors import ConfigurationError

# Load environment variables
load_dotenv()

OPTIONAL_VARIABLES = {
    "CLERK_JWKS_URL": "JWKS endpoint for session token signature checks (default: unverified)",
    "CLERK_SIGN_IN_URL": "Hosted sign-in page (default: /sign-in)",
    "FLASK_SECRET_KEY": "Flask session encryption key (required in production)",
    "ENVIRONMENT": "development, staging, production or testing (default: development)",
    "REQUEST_TIMEOUT": "Seconds per backend request (default: 15)",
}

SECRET_MARKERS = ("SECRET", "KEY", "TOKEN")


def _mask(name: str, value: str) -> str:
    if any(marker in name for marker in SECRET_MARKERS):
        return value[:8] + "..." if len(value) > 8 else "***"
    return value


def check_backend(settings, timeout: float = 5.0):
    """
    Ping the backend job listing.

    Returns:
        (ok, message)
    """
    url = f"{settings.api_base}/jobs"
    try:
        response = requests.get(url, params={"limit": 1}, timeout=timeout)
    except requests.ConnectionError:
        return False, f"Cannot connect to backend at {settings.api_url}"
    except requests.Timeout:
        return False, f"Backend did not answer within {timeout:.0f}s"

    if response.status_code != 200:
        return False, f"Backend returned HTTP {response.status_code} for GET {url}"
    return True, f"Backend is reachable at {settings.api_url}"


def check_required_env_vars() -> bool:
    """Verify all required environment variables are set."""
    errors = []
    warnings = []

    print("=" * 70)
    print("Job Board UI Configuration Verification")
    print("=" * 70)
    print()

    print("Required Environment Variables:")
    print("-" * 70)
    for var_name in REQUIRED_VARIABLES.values():
        value = os.getenv(var_name, "").strip()
        if not value:
            errors.append(f"{var_name}: NOT SET")
            print(f"MISSING  {var_name}")
        else:
            print(f"OK       {var_name:<25} {_mask(var_name, value)}")
    print()

    print("Optional Environment Variables:")
    print("-" * 70)
    for var_name, description in OPTIONAL_VARIABLES.items():
        value = os.getenv(var_name, "").strip()
        if not value:
            warnings.append(f"{var_name}: using default")
            print(f"DEFAULT  {var_name:<25} {description}")
        else:
            print(f"OK       {var_name:<25} {_mask(var_name, value)}")
    print()

    settings = None
    if not errors:
        try:
            settings = load_settings()
        except ConfigurationError as e:
            errors.append(str(e))
            print(f"INVALID  {e}")
            print()

    print("Backend Connectivity Test:")
    print("-" * 70)
    if settings is None:
        print("Skipped: configuration is incomplete")
    else:
        ok, message = check_backend(settings)
        print(("OK       " if ok else "FAILED   ") + message)
        if not ok:
            errors.append(message)
    print()

    print("=" * 70)
    print("Summary:")
    print("-" * 70)
    if errors:
        print(f"{len(errors)} critical error(s) found:")
        for error in errors:
            print(f"   {error}")
        print()
        print("RECOMMENDATION: Fix all critical errors before deploying to production")
        return False

    if warnings:
        print(f"{len(warnings)} warning(s) found:")
        for warning in warnings:
            print(f"   {warning}")
    else:
        print("All configuration checks passed!")
    print("=" * 70)
    return True


def main() -> int:
    return 0 if check_required_env_vars() else 1


if __name__ == "__main__":
    sys.exit(main())
