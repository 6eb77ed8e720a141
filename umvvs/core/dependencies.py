"""FastAPI dependency injection for services."""

from typing import Annotated

from fastapi import Depends

from ..services.browser import BrowserSessionFactory
from ..services.options_service import OptionsService
from .config import Settings, get_settings

# -----------------------------------------------------------------------------
# Browser Sessions
# -----------------------------------------------------------------------------

# Cached instances, one per process
_session_factory: BrowserSessionFactory | None = None
_options_service: OptionsService | None = None


def get_session_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BrowserSessionFactory:
    """Dependency for the shared browser session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = BrowserSessionFactory(settings)
    return _session_factory


# -----------------------------------------------------------------------------
# Options Service
# -----------------------------------------------------------------------------


def get_options_service(
    settings: Annotated[Settings, Depends(get_settings)],
    sessions: Annotated[BrowserSessionFactory, Depends(get_session_factory)],
) -> OptionsService:
    """Dependency for the options service."""
    global _options_service
    if _options_service is None:
        _options_service = OptionsService(sessions, settings)
    return _options_service


async def shutdown_services() -> None:
    """Close the shared browser, if one was ever launched."""
    global _session_factory, _options_service
    if _session_factory is not None:
        await _session_factory.close()
    _session_factory = None
    _options_service = None
