"""Dependency providers shared by the API routers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from ..config import StudioSettings, get_settings
from ..errors import AuthenticationRequired
from ..integrations.command_client import CommandServerClient
from ..integrations.elevenlabs_client import ElevenLabsClient
from ..services.completion_watcher import CompletionWatcherPool
from ..services.health_monitor import BackendHealthMonitor
from ..services.notification_service import NotificationService
from ..services.pipeline_service import PipelineService
from ..services.project_monitor import ProjectMonitorRegistry
from ..services.project_service import ProjectService
from ..services.pronunciation_service import PronunciationService
from ..services.status_service import StatusService
from ..services.user_service import UserService
from ..storage import ObjectStore, create_object_store
from ..storyboard.busy import BusySet
from ..storyboard.versions import ArtifactVersionService


@dataclass
class StudioServices:
    """Every long-lived service the API routes talk to."""

    settings: StudioSettings
    store: ObjectStore
    command_client: CommandServerClient
    dictionary_client: ElevenLabsClient
    busy: BusySet
    watchers: CompletionWatcherPool
    status: StatusService
    projects: ProjectService
    pipeline: PipelineService
    versions: ArtifactVersionService
    monitors: ProjectMonitorRegistry
    pronunciation: PronunciationService
    notifications: NotificationService
    users: UserService
    health: BackendHealthMonitor

    def shutdown(self) -> None:
        self.health.stop(timeout=1.0)
        self.monitors.close_all()
        self.watchers.cancel_all()


def build_services(
    settings: StudioSettings,
    *,
    store: Optional[ObjectStore] = None,
    command_client: Optional[CommandServerClient] = None,
    dictionary_client: Optional[ElevenLabsClient] = None,
) -> StudioServices:
    """Wire the service graph; collaborators may be supplied for tests."""

    store = store or create_object_store(settings)
    command_client = command_client or CommandServerClient(
        settings.remote_server_url,
        api_key=settings.secret("remote_api_key"),
        timeout=settings.remote_timeout_seconds,
        health_timeout=settings.remote_health_timeout_seconds,
    )
    dictionary_client = dictionary_client or ElevenLabsClient(
        settings.secret("elevenlabs_api_key"),
        base_url=settings.elevenlabs_base_url,
        timeout=settings.elevenlabs_timeout_seconds,
    )
    busy = BusySet()
    watchers = CompletionWatcherPool(
        initial_delay=settings.completion_initial_delay_seconds,
        interval=settings.completion_check_interval_seconds,
        timeout=settings.completion_timeout_seconds,
    )
    status = StatusService(store)
    projects = ProjectService(store, status)
    pipeline = PipelineService(command_client, projects, status, watchers, settings)
    notifications = NotificationService(settings.admin_email)
    return StudioServices(
        settings=settings,
        store=store,
        command_client=command_client,
        dictionary_client=dictionary_client,
        busy=busy,
        watchers=watchers,
        status=status,
        projects=projects,
        pipeline=pipeline,
        versions=ArtifactVersionService(store, busy, pipeline),
        monitors=ProjectMonitorRegistry(
            store=store,
            status_service=status,
            busy=busy,
            poll_interval=settings.status_poll_interval_seconds,
            settle_delay=settings.storyboard_settle_seconds,
            backoff_base=settings.backoff_base_seconds,
            backoff_max=settings.backoff_max_seconds,
        ),
        pronunciation=PronunciationService(store, dictionary_client, projects, settings),
        notifications=notifications,
        users=UserService(),
        health=BackendHealthMonitor(
            command_client,
            notifications,
            max_failures=settings.health_max_consecutive_failures,
            interval=settings.health_check_interval_seconds,
        ),
    )


@lru_cache(maxsize=1)
def get_services() -> StudioServices:
    """Return the process-wide service container."""

    return build_services(get_settings())


def get_project_service(services: StudioServices = Depends(get_services)) -> ProjectService:
    return services.projects


def get_pipeline_service(services: StudioServices = Depends(get_services)) -> PipelineService:
    return services.pipeline


def get_version_service(services: StudioServices = Depends(get_services)) -> ArtifactVersionService:
    return services.versions


def get_monitor_registry(services: StudioServices = Depends(get_services)) -> ProjectMonitorRegistry:
    return services.monitors


def get_pronunciation_service(
    services: StudioServices = Depends(get_services),
) -> PronunciationService:
    return services.pronunciation


def get_notification_service(
    services: StudioServices = Depends(get_services),
) -> NotificationService:
    return services.notifications


def get_user_service(services: StudioServices = Depends(get_services)) -> UserService:
    return services.users


@dataclass(frozen=True)
class RequestUserContext:
    """Identity forwarded by the authentication proxy."""

    user_id: str | None
    email: str | None = None


def get_request_user(
    header_user_id: str | None = Header(default=None, alias="X-User-Id"),
    header_user_email: str | None = Header(default=None, alias="X-User-Email"),
) -> RequestUserContext:
    """Resolve the request user identity from forwarded headers."""

    user_id = (header_user_id or "").strip() or None
    email = (header_user_email or "").strip() or None
    return RequestUserContext(user_id=user_id, email=email)


def require_user(
    request_user: RequestUserContext = Depends(get_request_user),
) -> RequestUserContext:
    if not request_user.user_id:
        raise AuthenticationRequired("Authentication failed.")
    return request_user


__all__ = [
    "RequestUserContext",
    "StudioServices",
    "build_services",
    "get_monitor_registry",
    "get_notification_service",
    "get_pipeline_service",
    "get_project_service",
    "get_pronunciation_service",
    "get_request_user",
    "get_services",
    "get_user_service",
    "get_version_service",
    "require_user",
]
