# backend/wealth_engine/services/state/persistence.py
"""
Persistence providers: where state documents are stored.

A document is a JSON-compatible dict saved under a string key and always
fully replaced; there are no partial updates.

Providers:
- InMemoryPersistenceProvider: dict-backed, for tests and ephemeral use
- SqlAlchemyPersistenceProvider: one row per key in ``state_documents``

Usage:
    from wealth_engine.database import create_engine_from_settings, create_session_factory

    session_factory = create_session_factory(create_engine_from_settings())
    persistence = SqlAlchemyPersistenceProvider(session_factory)
    persistence.save("invest:v2", {"portfolios": {}})
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from wealth_engine.models import StateDocument
from wealth_engine.services.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistenceProvider(Protocol):
    """Interface required by PortfolioStore and the legacy migration."""

    def load(self, key: str) -> dict[str, Any] | None:
        ...

    def save(self, key: str, data: dict[str, Any]) -> None:
        ...


class InMemoryPersistenceProvider:
    """
    Dict-backed provider.

    Documents are deep-copied on the way in and out so callers cannot
    mutate stored state by accident.

    Attributes:
        save_count: Number of save() calls (lets tests assert writes)
    """

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})
        self.save_count = 0

    def load(self, key: str) -> dict[str, Any] | None:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    def save(self, key: str, data: dict[str, Any]) -> None:
        self._documents[key] = copy.deepcopy(data)
        self.save_count += 1

    def keys(self) -> list[str]:
        return list(self._documents)


class SqlAlchemyPersistenceProvider:
    """
    Stores each document as one JSON row keyed by the storage key.

    Raises:
        PersistenceError: Wrapping any SQLAlchemyError
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self, key: str) -> dict[str, Any] | None:
        try:
            with self._session_factory() as session:
                row = session.get(StateDocument, key)
                return copy.deepcopy(row.payload) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to load document '{key}': {e}")
            raise PersistenceError(key=key, reason=str(e)) from e

    def save(self, key: str, data: dict[str, Any]) -> None:
        try:
            with self._session_factory() as session:
                row = session.get(StateDocument, key)
                if row is None:
                    session.add(StateDocument(key=key, payload=data))
                else:
                    # New dict so SQLAlchemy sees the JSON column as changed
                    row.payload = copy.deepcopy(data)
                session.commit()
            logger.debug(f"Saved document '{key}'")
        except SQLAlchemyError as e:
            logger.error(f"Failed to save document '{key}': {e}")
            raise PersistenceError(key=key, reason=str(e)) from e
