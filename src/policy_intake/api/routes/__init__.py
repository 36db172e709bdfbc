"""
API route handlers.

This package contains all route definitions for the Policy Intake API.
"""

from policy_intake.api.routes import admin, auth, uploads

__all__ = [
    "admin",
    "auth",
    "uploads",
]
