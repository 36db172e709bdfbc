"""
Policy Intake - Policy Document Upload Service.

Accepts policy document uploads, stores them under a key derived from the
policy ID, and notifies downstream systems by email and external API.
"""

from policy_intake.version import __version__

# API module is available but not exported by default
# Import explicitly: from policy_intake.api import create_app

__all__ = ["__version__"]
