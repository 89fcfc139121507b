"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends

from dispatch.adapters.events.memory_queue import AsyncioEventQueue
from dispatch.adapters.mail.http_mail_adapter import HttpMailAdapter
from dispatch.adapters.notifications.bilingual_renderer import BilingualRenderer
from dispatch.adapters.persistence.configuration import SqlConfigurationProvider
from dispatch.adapters.persistence.database import async_session_factory
from dispatch.adapters.persistence.directory import SqlDirectory
from dispatch.adapters.persistence.unit_of_work import sql_uow_factory
from dispatch.application.ports.configuration import ConfigurationPort
from dispatch.application.ports.directory import DirectoryPort
from dispatch.application.ports.event_publisher import EventPublisher
from dispatch.application.ports.unit_of_work import UnitOfWork
from dispatch.application.use_cases.dispatch_notification import NotificationDispatcher
from dispatch.application.use_cases.notify_transition import TransitionNotifier
from dispatch.application.use_cases.sla_monitor import SlaMonitorUseCase
from dispatch.application.use_cases.state_machine import RequestStateMachine
from dispatch.config import settings

# Singleton adapters (stateless or with internal caching)
_uow_factory = sql_uow_factory(async_session_factory)
_configuration = SqlConfigurationProvider(
    async_session_factory, settings, ttl_seconds=settings.config_cache_ttl_seconds
)
_directory = SqlDirectory(async_session_factory)
_dispatcher = NotificationDispatcher(BilingualRenderer(), HttpMailAdapter())

event_queue = AsyncioEventQueue(maxsize=settings.notification_queue_size)


def get_uow_factory() -> Callable[[], UnitOfWork]:
    return _uow_factory


def get_configuration() -> ConfigurationPort:
    return _configuration


def get_directory() -> DirectoryPort:
    return _directory


def get_event_publisher() -> EventPublisher:
    return event_queue


def get_cron_secret() -> str:
    return settings.cron_secret


def build_notifier(
    directory: DirectoryPort = _directory,
    configuration: ConfigurationPort = _configuration,
) -> TransitionNotifier:
    return TransitionNotifier(directory, configuration, _dispatcher)


def get_notifier(
    directory: DirectoryPort = Depends(get_directory),
    configuration: ConfigurationPort = Depends(get_configuration),
) -> TransitionNotifier:
    return build_notifier(directory, configuration)


def get_state_machine(
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
    configuration: ConfigurationPort = Depends(get_configuration),
    directory: DirectoryPort = Depends(get_directory),
    events: EventPublisher = Depends(get_event_publisher),
) -> RequestStateMachine:
    return RequestStateMachine(
        uow_factory,
        configuration,
        directory,
        events=events,
        system_actor_id=settings.system_user_id,
    )


def build_sla_monitor(
    uow_factory: Callable[[], UnitOfWork] = _uow_factory,
    configuration: ConfigurationPort = _configuration,
    directory: DirectoryPort = _directory,
    notifier: TransitionNotifier | None = None,
) -> SlaMonitorUseCase:
    # No event publisher: the monitor sends timeout notifications itself.
    machine = RequestStateMachine(
        uow_factory, configuration, directory, system_actor_id=settings.system_user_id
    )
    return SlaMonitorUseCase(
        machine, uow_factory, notifier or build_notifier(directory, configuration)
    )


def get_sla_monitor(
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
    configuration: ConfigurationPort = Depends(get_configuration),
    directory: DirectoryPort = Depends(get_directory),
    notifier: TransitionNotifier = Depends(get_notifier),
) -> SlaMonitorUseCase:
    return build_sla_monitor(uow_factory, configuration, directory, notifier)
