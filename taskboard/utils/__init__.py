"""
Utilities Module
================

Helper functions and utility classes.
"""

from taskboard.utils.validators import validate_email

__all__ = ["validate_email"]
