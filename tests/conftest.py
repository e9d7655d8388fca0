"""Shared fixtures: in-memory database, seeded catalog and accounts."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketlinks.catalog.models import Product, ProductVariant
from marketlinks.domain.state_machines import LinkStatus
from marketlinks.domain.value_objects import LinkableRef
from marketlinks.infrastructure.database import Base
from marketlinks.infrastructure.models import MarketplaceAccount, MarketplaceLink

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@dataclass
class SeededCatalog:
    """Catalog rows and accounts shared by the service tests.

    ``tee`` (parent SKU "ABC") has variants ``v1`` "ABC-001" and ``v2``
    "ABC-002". ``mug`` has no parent SKU, one variant ``w1`` "MUG-001" and
    one variant ``w2`` without a SKU. ``amazon`` is inactive.
    """

    tee: Product
    v1: ProductVariant
    v2: ProductVariant
    mug: Product
    w1: ProductVariant
    w2: ProductVariant
    shopify: MarketplaceAccount
    ebay: MarketplaceAccount
    amazon: MarketplaceAccount


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> SeededCatalog:
    tee = Product(id=str(uuid4()), name="Classic Tee", parent_sku="ABC")
    mug = Product(id=str(uuid4()), name="Plain Mug", parent_sku=None)
    catalog = SeededCatalog(
        tee=tee,
        v1=ProductVariant(id=str(uuid4()), product_id=tee.id, sku="ABC-001", color="Red", size="M"),
        v2=ProductVariant(id=str(uuid4()), product_id=tee.id, sku="ABC-002", color="Blue", size="L"),
        mug=mug,
        w1=ProductVariant(id=str(uuid4()), product_id=mug.id, sku="MUG-001"),
        w2=ProductVariant(id=str(uuid4()), product_id=mug.id, sku=None, color="White"),
        shopify=MarketplaceAccount(
            id=str(uuid4()),
            channel="shopify",
            display_name="Main Store",
            credentials={"store_url": "demo.myshopify.com"},
        ),
        ebay=MarketplaceAccount(id=str(uuid4()), channel="ebay"),
        amazon=MarketplaceAccount(id=str(uuid4()), channel="amazon", is_active=False),
    )

    async with session_factory() as session, session.begin():
        session.add_all([catalog.tee, catalog.mug])
        await session.flush()
        session.add_all([catalog.v1, catalog.v2, catalog.w1, catalog.w2])
        session.add_all([catalog.shopify, catalog.ebay, catalog.amazon])

    return catalog


MakeLink = Callable[..., Awaitable[MarketplaceLink]]


@pytest.fixture
def make_link(session_factory: async_sessionmaker[AsyncSession]) -> MakeLink:
    """Insert a link directly, bypassing the services.

    Lets tests set up drifted or corrupted hierarchies.
    """

    async def _make(
        ref: LinkableRef,
        account_id: str,
        parent_link_id: str | None = None,
        status: LinkStatus = LinkStatus.PENDING,
        sku: str | None = None,
        **fields: Any,
    ) -> MarketplaceLink:
        link = MarketplaceLink.for_linkable(ref, account_id, sku)
        link.parent_link_id = parent_link_id
        if status is not LinkStatus.PENDING:
            link.transition_to(status)
        for name, value in fields.items():
            setattr(link, name, value)

        async with session_factory() as session, session.begin():
            session.add(link)
        return link

    return _make


LoadLinks = Callable[[], Awaitable[list[MarketplaceLink]]]


@pytest.fixture
def load_links(session_factory: async_sessionmaker[AsyncSession]) -> LoadLinks:
    """Load every stored link in a fresh session."""

    async def _load() -> list[MarketplaceLink]:
        async with session_factory() as session:
            result = await session.execute(select(MarketplaceLink).order_by(MarketplaceLink.id))
            return list(result.scalars().all())

    return _load
