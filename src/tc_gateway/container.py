"""Service wiring — one explicit store handle threaded through every component."""

import logging
from dataclasses import dataclass

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import Settings
from src.tc_account.application.service import AccountApplicationService
from src.tc_account.domain.transfer import TransferEngine
from src.tc_booking.application.confirm_hook import BookingConfirmedHook
from src.tc_booking.application.service import BookingApplicationService
from src.tc_booking.domain.state_machine import BookingStateMachine
from src.tc_common.database import build_engine, build_session_factory
from src.tc_common.redis_client import build_redis, close_redis
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.domain.repository import LedgerStoreProtocol
from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore
from src.tc_ledger.infrastructure.persistence import SqlLedgerStore
from src.tc_ledger.infrastructure.redis_publisher import RedisChangePublisher
from src.tc_skill.application.service import SkillApplicationService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    store: LedgerStoreProtocol
    runner: AtomicRunner
    transfers: TransferEngine
    machine: BookingStateMachine
    accounts: AccountApplicationService
    skills: SkillApplicationService
    bookings: BookingApplicationService
    starting_credits: int
    confirm_hook: BookingConfirmedHook | None = None
    publisher: RedisChangePublisher | None = None
    engine: AsyncEngine | None = None
    redis: aioredis.Redis | None = None

    async def aclose(self) -> None:
        if self.confirm_hook is not None:
            self.confirm_hook.detach()
        if self.publisher is not None:
            self.publisher.detach()
        await close_redis(self.redis)
        if self.engine is not None:
            await self.engine.dispose()


def build_store(cfg: Settings) -> tuple[LedgerStoreProtocol, AsyncEngine | None]:
    if cfg.STORE_BACKEND == "memory":
        return InMemoryLedgerStore(), None
    if cfg.STORE_BACKEND == "postgres":
        engine = build_engine(cfg.DATABASE_URL, echo=cfg.DEBUG)
        return SqlLedgerStore(build_session_factory(engine)), engine
    raise ValueError(f"Unknown STORE_BACKEND: {cfg.STORE_BACKEND!r}")


def build_container(cfg: Settings, store: LedgerStoreProtocol | None = None) -> ServiceContainer:
    engine: AsyncEngine | None = None
    if store is None:
        store, engine = build_store(cfg)

    runner = AtomicRunner(
        store,
        max_attempts=cfg.TX_MAX_ATTEMPTS,
        wait_min=cfg.TX_RETRY_WAIT_MIN,
        wait_max=cfg.TX_RETRY_WAIT_MAX,
    )
    transfers = TransferEngine(runner)
    machine = BookingStateMachine(runner, transfers)
    container = ServiceContainer(
        store=store,
        runner=runner,
        transfers=transfers,
        machine=machine,
        accounts=AccountApplicationService(runner, transfers, cfg.STARTING_CREDITS),
        skills=SkillApplicationService(runner),
        bookings=BookingApplicationService(machine, store),
        starting_credits=cfg.STARTING_CREDITS,
        engine=engine,
    )

    if cfg.CONFIRM_HOOK_ENABLED:
        container.confirm_hook = BookingConfirmedHook(
            runner, check_credits=cfg.CONFIRM_HOOK_CHECK_CREDITS
        )
        container.confirm_hook.attach()
    if cfg.CHANGE_FEED_PUBLISH:
        container.redis = build_redis(cfg.REDIS_URL)
        container.publisher = RedisChangePublisher(container.redis, cfg.CHANGE_FEED_CHANNEL)
        container.publisher.attach(store)

    logger.info(
        "Services wired: store=%s confirm_hook=%s change_feed_publish=%s",
        type(store).__name__,
        cfg.CONFIRM_HOOK_ENABLED,
        cfg.CHANGE_FEED_PUBLISH,
    )
    return container
