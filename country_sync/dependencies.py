from fastapi import Request

from country_sync.config import Settings
from country_sync.renderer import SummaryRenderer
from country_sync.services import RefreshService
from country_sync.store import CountryStore

# Collaborators are built once by the app lifespan and kept on app.state


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> CountryStore:
    return request.app.state.store


def get_refresh_service(request: Request) -> RefreshService:
    return request.app.state.refresh_service


def get_renderer(request: Request) -> SummaryRenderer:
    return request.app.state.renderer
