import os

# must be in place before hackmate.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["AI_PROVIDER"] = "placeholder"

import pytest  # noqa: E402

from hackmate.auth.identity_provider import IdentityProvider  # noqa: E402
from hackmate.database import init_db, make_engine, make_session_factory  # noqa: E402
from hackmate.store.document_store import DocumentStore  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    store = DocumentStore(session_factory)
    yield store
    store.close()


@pytest.fixture
def identity(session_factory):
    return IdentityProvider(session_factory)
