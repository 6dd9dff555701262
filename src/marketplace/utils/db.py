"""Database plumbing on top of the domain's SQLAlchemy providers.

Aggregates are persisted by Protean repositories. The few statements that
must be evaluated by the database itself (conditional stock updates, counter
increments, filtered listings) are written in SQLAlchemy Core against the
provider's own tables and run on the session of the unit of work in progress.
"""

from datetime import UTC, datetime

import structlog
from protean.domain import Domain
from protean.utils.globals import current_domain, current_uow
from sqlalchemy import Table, create_engine
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def table_for(cls) -> Table:
    """The table the domain's provider maps ``cls`` to."""
    provider = current_domain.providers[cls.meta_.provider]
    current_domain.repository_for(cls)._dao  # noqa: B018
    return provider._metadata.tables[cls.meta_.schema_name]


def session_for(cls) -> Session:
    """Session of the running unit of work for ``cls``'s provider.

    Pending ORM changes are flushed first so that statements issued on the
    session see them.
    """
    if not (current_uow and current_uow.in_progress):
        raise RuntimeError(f"No unit of work in progress for {cls.__name__}")

    session = current_uow.get_session(cls.meta_.provider)
    session.flush()
    return session


def versioned(table: Table, values: dict) -> dict:
    """Add an aggregate version bump to an UPDATE's ``values``.

    A repository save of a copy loaded before this UPDATE then fails its
    expected-version check instead of overwriting the new counters.
    """
    if "_version" in table.c:
        values["_version"] = table.c["_version"] + 1
    return values


def setup_db(domain: Domain):
    """Setup database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])

                for _, aggregate_record in domain.registry.aggregates.items():
                    if aggregate_record.cls.meta_.provider == provider.name:
                        domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

                for _, entity_record in domain.registry.entities.items():
                    if entity_record.cls.meta_.provider == provider.name:
                        domain.repository_for(entity_record.cls)._dao  # noqa: B018

                provider._metadata.create_all(engine)
                engine.dispose()
                logger.info("Database schema created", provider=provider.name)


def drop_db(domain: Domain):
    """Drop database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
                engine.dispose()
                logger.info("Database schema dropped", provider=provider.name)
