"""
Stories app for Newsdesk.

Stories, their taxonomy and translations, and the story workflow definition.
"""

default_app_config = 'apps.stories.apps.StoriesConfig'
