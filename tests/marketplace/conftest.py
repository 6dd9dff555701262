from decimal import Decimal

import pytest
from protean import current_domain

from marketplace.config import Settings
from marketplace.domain import marketplace as marketplace_domain
from marketplace.notifications.channel import FakeNotifier, reset_channel, use_channel
from marketplace.product.management import RegisterProduct
from marketplace.product.product import Product
from marketplace.services import Marketplace
from marketplace.utils.db import drop_db

ADDRESS = {
    "street": "12 Moi Avenue",
    "city": "Nairobi",
    "state": "Nairobi County",
    "postal_code": "00100",
    "country": "KE",
}


@pytest.fixture(scope="session")
def settings(tmp_path_factory):
    database = tmp_path_factory.mktemp("marketplace") / "marketplace.db"
    return Settings(environment="test", database_url=f"sqlite:///{database}")


@pytest.fixture(scope="session")
def marketplace(settings):
    marketplace = Marketplace(marketplace_domain, settings=settings)
    marketplace.init(configure_logs=False)
    yield marketplace
    drop_db(marketplace_domain)


@pytest.fixture(autouse=True)
def _ctx(marketplace):
    """Run every test inside the domain context and wipe the data afterwards."""
    with marketplace.domain.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture()
def notifier():
    notifier = FakeNotifier()
    use_channel(notifier)
    yield notifier
    reset_channel()


@pytest.fixture()
def make_product(marketplace):
    """Register a product through the catalogue and return it."""

    def _make(name="Kikoy Towel", price="10.00", stock=10, is_active=True, merchant_id="merchant-001"):
        return marketplace.catalogue.register(
            RegisterProduct(
                name=name,
                merchant_id=merchant_id,
                merchant_name="Lamu Weavers",
                price=Decimal(str(price)),
                stock_quantity=stock,
                is_active=is_active,
            )
        )

    return _make


@pytest.fixture()
def reload_product():
    """Fresh read of a product from its repository."""

    def _reload(product_id) -> Product:
        return current_domain.repository_for(Product).get(str(product_id))

    return _reload


@pytest.fixture()
def address():
    return dict(ADDRESS)
