"""Service container: process-wide clients built once and injected where needed."""

from dataclasses import dataclass

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from cart_recovery.config import Settings
from cart_recovery.infrastructure.database.connection import (
    get_async_engine,
    get_async_session_factory,
)
from cart_recovery.infrastructure.database.repository import CartRecoveryRepository
from cart_recovery.infrastructure.redis import CacheService, create_redis_client
from cart_recovery.services.abandonment_scanner import AbandonmentScanner
from cart_recovery.services.message_composer import MessageComposer
from cart_recovery.services.mock_sms_sender import MockSMSSender
from cart_recovery.services.reminder_dispatcher import ReminderDispatcher, SMSSender
from cart_recovery.services.sms_sender import TwilioSMSSender
from cart_recovery.services.view_recorder import ViewRecorder

logger = structlog.get_logger()


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    cache: CacheService
    repository: CartRecoveryRepository
    composer: MessageComposer
    sms_sender: SMSSender
    view_recorder: ViewRecorder
    dispatcher: ReminderDispatcher
    scanner: AbandonmentScanner

    async def aclose(self) -> None:
        await self.composer.client.close()
        await self.cache.close()
        await self.engine.dispose()


def build_sms_sender(settings: Settings) -> SMSSender:
    if settings.sms_provider == "twilio":
        return TwilioSMSSender.from_settings(settings)
    return MockSMSSender(settings.mock_sms_storage_path)


async def build_container(settings: Settings) -> ServiceContainer:
    """Create the engine, Redis client and services for one process."""
    engine = get_async_engine(settings)
    repository = CartRecoveryRepository(get_async_session_factory(engine))
    cache = CacheService(await create_redis_client(settings))
    composer = MessageComposer.from_settings(settings)
    sms_sender = build_sms_sender(settings)
    dispatcher = ReminderDispatcher.from_settings(settings, repository, composer, sms_sender)
    scanner = AbandonmentScanner.from_settings(settings, repository, dispatcher, cache=cache)

    logger.info(
        "Services initialized",
        sms_provider=settings.sms_provider,
        dry_run=settings.reminder_dry_run,
        detection_window_minutes=settings.abandonment_window_minutes,
        cooldown_minutes=settings.cooldown_minutes,
    )

    return ServiceContainer(
        settings=settings,
        engine=engine,
        cache=cache,
        repository=repository,
        composer=composer,
        sms_sender=sms_sender,
        view_recorder=ViewRecorder(repository),
        dispatcher=dispatcher,
        scanner=scanner,
    )


# =============================================================================
# FastAPI dependencies
# =============================================================================


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_repository(request: Request) -> CartRecoveryRepository:
    return get_container(request).repository


def get_view_recorder(request: Request) -> ViewRecorder:
    return get_container(request).view_recorder


def get_scanner(request: Request) -> AbandonmentScanner:
    return get_container(request).scanner


def get_dispatcher(request: Request) -> ReminderDispatcher:
    return get_container(request).dispatcher


def get_composer(request: Request) -> MessageComposer:
    return get_container(request).composer


def get_cache(request: Request) -> CacheService:
    return get_container(request).cache
