"""
Bulletins app for Newsdesk.

Ordered collections of stories for radio syndication, moved through the
bulletin workflow.
"""

default_app_config = 'apps.bulletins.apps.BulletinsConfig'
