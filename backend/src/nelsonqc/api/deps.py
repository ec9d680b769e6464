"""FastAPI dependency injection functions.

Components are created once in the application lifespan and stored on
``app.state``; these helpers hand them to endpoints.
"""

from fastapi import Request

from nelsonqc.core.config import Settings
from nelsonqc.core.engine.nelson_rules import NelsonRuleLibrary
from nelsonqc.core.sync import SyncCoordinator


def get_coordinator(request: Request) -> SyncCoordinator:
    """Get the application's sync coordinator."""
    return request.app.state.coordinator


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_rule_library() -> NelsonRuleLibrary:
    """Get a Nelson rule library instance."""
    return NelsonRuleLibrary()
