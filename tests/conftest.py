from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

import skillrouter.persistence.pg as pg
from skillrouter.core.config import get_settings
from skillrouter.persistence.models import Base, SkillModel, SkillRouteModel
from skillrouter.routing.invoker import SkillInvoker


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.auth_enabled = True

    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables(configure_test_engine):
    with pg.session_scope() as s:
        s.execute(delete(SkillRouteModel))
        s.execute(delete(SkillModel))
    yield


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def auth_headers():
    settings = get_settings()
    return {
        "user": {"X-API-Key": settings.user_api_key},
        "admin": {"X-API-Key": settings.admin_api_key},
    }


@pytest.fixture()
def remote_calls() -> list[httpx.Request]:
    return []


@pytest.fixture()
def make_invoker(remote_calls: list[httpx.Request]) -> Callable[..., SkillInvoker]:
    """Build an invoker whose HTTP traffic goes to ``handler`` instead of the network."""

    def _make(handler=None, environ: dict[str, str] | None = None) -> SkillInvoker:
        def _record(request: httpx.Request) -> httpx.Response:
            remote_calls.append(request)
            if handler is None:
                body = json.loads(request.content)
                return httpx.Response(200, json={"text": f"handled by {body['skill']}"})
            return handler(request)

        return SkillInvoker(environ=environ or {}, transport=httpx.MockTransport(_record))

    return _make


@pytest.fixture()
def client(configure_test_engine, make_invoker):
    from skillrouter.api.deps import get_skill_invoker
    from skillrouter.main import app

    app.dependency_overrides[get_skill_invoker] = lambda: make_invoker()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
