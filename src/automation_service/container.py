"""
Service container using dependency-injector for the automation service
"""
from dependency_injector import containers, providers

from app_config import AppConfig
from evm_connector import (
    EVMClient,
    EVMTradeExecutor,
    LendingPositionReader,
    StargateQuoteClient,
    WalletServiceClient,
)
from .services.advisor_service import AdvisorOrchestrator
from .services.automation_service import AutomationService
from .services.notification_service import NotificationService
from .services.recommendation_service import RecommendationService
from .services.scheduler_service import SchedulerService


class ServiceContainer(containers.DeclarativeContainer):
    """DI Container for the automation service"""

    # Configuration (validated AppConfig instance)
    config = providers.Dependency(instance_of=AppConfig)

    # External clients (Singletons)
    chain_client = providers.Singleton(EVMClient, config=config)

    wallet_client = providers.Singleton(WalletServiceClient, config=config)

    quote_client = providers.Singleton(StargateQuoteClient, config=config)

    # Balances come from contract calls or from the wallet service
    balance_reader = providers.Selector(
        providers.Callable(lambda cfg: cfg.automation.balance_source, config),
        rpc=chain_client,
        wallet_service=wallet_client,
    )

    # Allocation counts supplied lending positions as holdings of the underlying asset
    holdings_reader = providers.Singleton(LendingPositionReader, inner=balance_reader)

    executor = providers.Singleton(
        EVMTradeExecutor,
        chain_client=chain_client,
        quote_provider=quote_client,
        balance_reader=balance_reader,
        portfolio=config.provided.portfolio,
    )

    notification_service = providers.Singleton(NotificationService)

    recommendation_service = providers.Singleton(RecommendationService, config=config)

    automation_service = providers.Singleton(
        AutomationService,
        wallet_client=wallet_client,
        balance_reader=holdings_reader,
        executor=executor,
        recommendation_service=recommendation_service,
        notification_service=notification_service,
        config=config,
    )

    scheduler_service = providers.Singleton(
        SchedulerService,
        automation_service=automation_service,
        config=config,
    )

    advisor = providers.Singleton(AdvisorOrchestrator, config=config)
