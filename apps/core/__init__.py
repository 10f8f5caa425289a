"""
Core app for Newsdesk.

Provides staff profiles, API errors, permissions, request ids, metrics
and health checks.
"""

default_app_config = 'apps.core.apps.CoreConfig'
