"""Composition root — the marketplace services wired around one domain.

The domain is handed in explicitly; every service receives it and opens
its own domain context and unit of work per call.
"""

import structlog
from protean.domain import Domain

import marketplace.flash_sale.sales  # noqa: F401  registers FlashSaleSalesRecorder
import marketplace.notifications.handlers  # noqa: F401  registers notification handlers
from marketplace.cart.aggregator import CartAggregator
from marketplace.config import Settings, get_settings
from marketplace.domain import configure
from marketplace.flash_sale.management import FlashSaleManager
from marketplace.notifications.channel import NotificationPort, build_channel, use_channel
from marketplace.order.checkout import CheckoutService
from marketplace.order.lifecycle import OrderLifecycleManager
from marketplace.order.placement import OrderTransactionCoordinator
from marketplace.product.management import ProductCatalogue
from marketplace.utils.db import setup_db
from marketplace.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


class Marketplace:
    def __init__(self, domain: Domain, settings: Settings | None = None, notifier: NotificationPort | None = None):
        self.domain = domain
        self.settings = settings or get_settings()

        self.notifier = notifier or build_channel(self.settings.notification_channel)
        use_channel(self.notifier)

        self.catalogue = ProductCatalogue(domain)
        self.carts = CartAggregator(domain, max_quantity=self.settings.max_cart_quantity)
        self.orders = OrderTransactionCoordinator(domain)
        self.lifecycle = OrderLifecycleManager(domain)
        self.checkout = CheckoutService(domain, self.orders)
        self.flash_sales = FlashSaleManager(domain)

    def init(self, configure_logs: bool = True) -> None:
        """Configure logging, initialize the domain and make sure the schema exists."""
        if configure_logs:
            configure_logging(
                environment=self.settings.environment,
                level=self.settings.log_level,
                log_dir=self.settings.log_dir,
            )
        configure(self.domain, self.settings)
        self.domain.init()
        setup_db(self.domain)
        logger.info("Marketplace initialized", domain=self.domain.name, environment=self.settings.environment)
