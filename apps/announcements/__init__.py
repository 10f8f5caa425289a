"""
Announcements app for Newsdesk.

Staff-wide notices with priority, audience and per-user dismissal.
"""

default_app_config = 'apps.announcements.apps.AnnouncementsConfig'
