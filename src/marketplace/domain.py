"""Marketplace bounded context — products, carts, orders and flash sales.

Every aggregate, event and handler in the package registers itself on the
``marketplace`` domain. Database and processing settings are applied with
``configure()`` before ``init()``.
"""

import structlog
from protean.domain import Domain

from marketplace.config import Settings

marketplace = Domain(name="marketplace")

logger = structlog.get_logger(__name__)


def _provider_for(database_url: str) -> str:
    if database_url.startswith("postgresql"):
        return "postgresql"
    return "sqlite"


def configure(domain: Domain, settings: Settings) -> None:
    """Point ``domain`` at the configured database.

    Events and commands are processed synchronously: handlers run as soon as
    the unit of work that raised the event has committed.
    """
    domain.config["databases"] = {
        "default": {
            "provider": _provider_for(settings.database_url),
            "database_uri": settings.database_url,
            "SQLALCHEMY_ECHO": settings.echo_sql,
        }
    }
    domain.config["event_processing"] = "sync"
    domain.config["command_processing"] = "sync"
    logger.debug("Domain configured", domain=domain.name, provider=_provider_for(settings.database_url))
