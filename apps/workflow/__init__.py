"""
Workflow app for Newsdesk.

The transition engine shared by stories and bulletins: role authority,
assignment resolution, compare-and-set persistence and the append-only
transition history.
"""

default_app_config = 'apps.workflow.apps.WorkflowConfig'
