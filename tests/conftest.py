from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.pool import StaticPool

from backend.app.db import init_db, make_engine, make_session_factory
from backend.app.errors import EnrichmentError, PersistenceError


class FakeEnrichment:
    """Returns canned results per kind; fails on the kinds listed in `fail_on`."""

    def __init__(self, results=None, fail_on=(), message="model unavailable", gate=None):
        self.results = results or {}
        self.fail_on = set(fail_on)
        self.message = message
        self.gate = gate
        self.calls = []

    async def enrich(self, text, rating, kind):
        self.calls.append((text, rating, kind))
        if self.gate is not None:
            await self.gate.wait()
        if kind in self.fail_on:
            raise EnrichmentError(self.message)
        return self.results.get(kind, f"{kind.value} for {rating}")


class FakeStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.records = []

    async def persist(self, record):
        if self.fail:
            raise PersistenceError("disk full")
        self.records.append(record)


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


def run(coro):
    return asyncio.run(coro)
