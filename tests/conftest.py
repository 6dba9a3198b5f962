import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

TEST_JWT_SECRET = "test-jwt-secret-with-enough-bytes-for-hs256"

os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite:///" + os.path.join(tempfile.gettempdir(), "marketplace_test_bootstrap.db")
)

from marketplace.database import Base  # noqa: E402
from marketplace.models import MarketplaceListing, Profile, UserRole  # noqa: E402
from marketplace.services.auth_service import CallerSession  # noqa: E402

BUYER_ID = "buyer-1"
OTHER_BUYER_ID = "buyer-2"
SELLER_ID = "seller-1"
LISTING_ID = "listing-1"
OTHER_LISTING_ID = "listing-2"


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'marketplace.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def marketplace(db):
    """Two buyers, one seller and two of the seller's listings."""
    db.add_all([
        Profile(id=BUYER_ID, full_name="Ada Buyer", email="ada@example.com", user_type="buyer"),
        Profile(id=OTHER_BUYER_ID, full_name="Bob Buyer", email="bob@example.com", user_type="buyer"),
        Profile(id=SELLER_ID, full_name="Sam Seller", email="sam@example.com", user_type="seller"),
    ])
    db.add_all([
        MarketplaceListing(id=LISTING_ID, seller_id=SELLER_ID, title="Benchy print"),
        MarketplaceListing(id=OTHER_LISTING_ID, seller_id=SELLER_ID, title="PLA vase"),
    ])
    db.commit()
    return db


@pytest.fixture
def buyer():
    return CallerSession(user_id=BUYER_ID, role=UserRole.BUYER)


@pytest.fixture
def seller():
    return CallerSession(user_id=SELLER_ID, role=UserRole.SELLER)


def flush(background):
    """Run the detached tasks a controller scheduled, as Starlette would after a response."""
    asyncio.run(background())
    background.tasks.clear()


def make_token(user_id: str, secret: str = TEST_JWT_SECRET) -> str:
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, secret, algorithm="HS256")
