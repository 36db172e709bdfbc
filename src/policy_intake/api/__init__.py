"""
Policy Intake API Module.

REST API for policy document upload, retrieval and management.
"""

from policy_intake.api.app import create_app

__all__ = ["create_app"]
