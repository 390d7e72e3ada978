from __future__ import annotations

from ledger_db.crud.payments import CouponDAO, OrderMetadataDAO, TransactionLogDAO
from ledger_db.crud.player import PlayerDAO
from ledger_db.crud.subscriptions import AutorenewDAO, SubscriptionDAO
from ledger_db.db import ShardRegistry
from store_common.core.config_service import ConfigService
from store_common.core.lifecycle import Lifecycle
from store_common.utils import cached_classmethod, get_logger
from storefront.services.autorenew_service import AutorenewService, ItemCheckoutService
from storefront.services.coin_checkout_service import CoinCheckoutService
from storefront.services.coupon_service import CouponService
from storefront.services.ledger_service import LedgerService
from storefront.services.order_metadata_store import OrderMetadataStore
from storefront.services.paypal_gateway import PayPalGateway
from storefront.services.player_service import PlayerService
from storefront.services.pricing_service import PricingService
from storefront.services.principal import PrincipalResolver
from storefront.services.rate_limiter import InMemoryRateLimiter, RateLimiter
from storefront.services.replay_guard import ReplayGuard
from storefront.services.subscription_service import SubscriptionService

logger = get_logger()


class Services(Lifecycle):
    config_service: ConfigService
    shard_registry: ShardRegistry
    paypal_gateway: PayPalGateway
    rate_limiter: RateLimiter
    principal_resolver: PrincipalResolver

    player_dao: PlayerDAO
    order_metadata_dao: OrderMetadataDAO
    coupon_dao: CouponDAO
    transaction_dao: TransactionLogDAO
    subscription_dao: SubscriptionDAO
    autorenew_dao: AutorenewDAO

    pricing_service: PricingService
    metadata_store: OrderMetadataStore
    replay_guard: ReplayGuard
    ledger_service: LedgerService
    coin_checkout_service: CoinCheckoutService
    subscription_service: SubscriptionService
    autorenew_service: AutorenewService
    item_checkout_service: ItemCheckoutService
    coupon_service: CouponService
    player_service: PlayerService

    def __init__(self) -> None:
        super().__init__()

        # Core infrastructure
        self.config_service = self._create_config_service()
        self.shard_registry = self._create_shard_registry(config_service=self.config_service)
        self.paypal_gateway = self._create_paypal_gateway(config_service=self.config_service)
        self.rate_limiter = self._create_rate_limiter(config_service=self.config_service)
        self.principal_resolver = self._create_principal_resolver(config_service=self.config_service)

        # Database access objects
        self.player_dao = PlayerDAO()
        self.order_metadata_dao = OrderMetadataDAO()
        self.coupon_dao = CouponDAO()
        self.transaction_dao = TransactionLogDAO()
        self.subscription_dao = SubscriptionDAO()
        self.autorenew_dao = AutorenewDAO()

        # Domain services
        public_base_url = self.config_service.public_base_url
        self.pricing_service = PricingService(self.coupon_dao)
        self.metadata_store = OrderMetadataStore(self.shard_registry, self.order_metadata_dao)
        self.replay_guard = ReplayGuard(self.transaction_dao)
        self.ledger_service = self._create_ledger_service()
        self.coin_checkout_service = CoinCheckoutService(
            shards=self.shard_registry,
            gateway=self.paypal_gateway,
            pricing_service=self.pricing_service,
            metadata_store=self.metadata_store,
            replay_guard=self.replay_guard,
            ledger_service=self.ledger_service,
            rate_limiter=self.rate_limiter,
            public_base_url=public_base_url,
        )
        self.subscription_service = SubscriptionService(
            shards=self.shard_registry,
            gateway=self.paypal_gateway,
            ledger_service=self.ledger_service,
            subscription_dao=self.subscription_dao,
            rate_limiter=self.rate_limiter,
            public_base_url=public_base_url,
        )
        self.autorenew_service = AutorenewService(self.shard_registry, self.autorenew_dao)
        self.item_checkout_service = ItemCheckoutService(
            shards=self.shard_registry,
            gateway=self.paypal_gateway,
            autorenew_service=self.autorenew_service,
            coin_checkout_service=self.coin_checkout_service,
            rate_limiter=self.rate_limiter,
            public_base_url=public_base_url,
        )
        self.coupon_service = CouponService(self.shard_registry, self.coupon_dao)
        self.player_service = PlayerService(self.shard_registry, self.player_dao)

    @cached_classmethod
    def instance(cls) -> Services:
        return cls()

    async def _start(self) -> None:
        await self.shard_registry.start()
        await self.paypal_gateway.start()
        logger.info("Storefront services ready", shards=self.shard_registry.labels, paypal_mode=self.config_service.paypal.mode)

    async def _stop(self) -> None:
        await self.paypal_gateway.stop()
        await self.shard_registry.stop()

    # Protected creation methods for dependency injection/overriding

    def _create_config_service(self) -> ConfigService:
        return ConfigService()

    def _create_shard_registry(self, config_service: ConfigService) -> ShardRegistry:
        shards = config_service.shards
        return ShardRegistry(shards.databases, primary=shards.primary)

    def _create_paypal_gateway(self, config_service: ConfigService) -> PayPalGateway:
        return PayPalGateway(config_service.paypal)

    def _create_rate_limiter(self, config_service: ConfigService) -> RateLimiter:
        limits = config_service.rate_limit
        return InMemoryRateLimiter(max_requests=limits.max_requests, window_seconds=limits.window_seconds)

    def _create_principal_resolver(self, config_service: ConfigService) -> PrincipalResolver:
        return PrincipalResolver(config_service.auth)

    def _create_ledger_service(self) -> LedgerService:
        return LedgerService(
            shards=self.shard_registry,
            player_dao=self.player_dao,
            coupon_dao=self.coupon_dao,
            transaction_dao=self.transaction_dao,
            subscription_dao=self.subscription_dao,
        )
