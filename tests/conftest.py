import os
import re
import sys
import tempfile
from importlib import import_module
from pathlib import Path

import pytest
import requests_mock

# Settings, the mailer and the background pool read these at import time
_REQUIRED_DEFAULTS = {
    "APP_ENV": "test",
    "SECRET_KEY": "test-secret-key",
    "MEDIA_ROOT": tempfile.mkdtemp(prefix="referral-api-tests-"),
    "BACKGROUND_TASKS_EAGER": "1",
    "STORAGE_BACKEND": "local",
    "TASKS_DRY_RUN": "1",
    "SMTP_HOST": "",
    "REDIS_HOST": "",
}
for _k, _v in _REQUIRED_DEFAULTS.items():
    os.environ.setdefault(_k, _v)

# Ensure the backend/ directory is importable as 'referral_api.*' and 'infrastructure.*'
WS_ROOT = Path(__file__).resolve().parents[1]
PKG_ROOT = WS_ROOT / "backend"
if str(PKG_ROOT) not in sys.path:
    sys.path.insert(0, str(PKG_ROOT))

ONBOARDING_DEFAULTS = {
    "name": "Acme Partners",
    "domain": "refer.acme.com",
    "url": "https://acme.com",
    "programType": "new",
    "defaultRewardType": "sale",
    "type": "percentage",
    "amount": 20,
}


@pytest.fixture(scope="function")
def db_engine(tmp_path: Path):
    """Provide a temporary SQLite engine with the schema created.

    ``referral_api.core.database.engine`` is patched in place so request
    sessions and background ``session_scope()`` calls both use it.
    """
    from sqlmodel import create_engine
    db_path = tmp_path / "test.db"
    engine_url = f"sqlite:///{db_path.as_posix()}"

    db = import_module("referral_api.core.database")
    old_engine = getattr(db, "engine")
    new_engine = create_engine(engine_url, echo=False, connect_args={"check_same_thread": False})
    setattr(db, "engine", new_engine)

    db.create_db_and_tables()

    try:
        yield new_engine
    finally:
        setattr(db, "engine", old_engine)
        new_engine.dispose()


@pytest.fixture(autouse=True)
def local_storage(tmp_path: Path, monkeypatch):
    """Point the local storage backend at a per-test directory."""
    media_root = tmp_path / "media"
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("MEDIA_ROOT", str(media_root))
    monkeypatch.delenv("LOCAL_MEDIA_BASE_URL", raising=False)
    return media_root / "storage"


@pytest.fixture(scope="function")
def app(db_engine):
    """FastAPI app wired to the temporary DB engine."""
    main = import_module("referral_api.main")
    return main.create_app()


@pytest.fixture(scope="function")
def session(db_engine):
    """Database session bound to the temporary test engine."""
    from sqlmodel import Session as SQLSession
    with SQLSession(db_engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture(scope="function")
def client(app):
    from fastapi.testclient import TestClient
    with TestClient(app) as tc:
        yield tc


# --- Factories ---------------------------------------------------------------


@pytest.fixture
def user(session):
    from referral_api.models import User
    u = User(email="owner@acme.com", name="Owner")
    session.add(u)
    session.commit()
    return u


@pytest.fixture
def workspace(session, user):
    """Workspace ``acme`` owned by ``user`` with the verified domain refer.acme.com."""
    from referral_api.models import Domain, Workspace, WorkspaceRole, WorkspaceUser
    ws = Workspace(slug="acme", name="Acme")
    session.add(ws)
    session.flush()
    session.add(WorkspaceUser(workspace_id=ws.id, user_id=user.id, role=WorkspaceRole.owner))
    session.add(Domain(slug="refer.acme.com", workspace_id=ws.id))
    session.commit()
    return ws


@pytest.fixture
def other_workspace(session):
    from referral_api.models import Domain, Workspace
    ws = Workspace(slug="globex", name="Globex")
    session.add(ws)
    session.flush()
    session.add(Domain(slug="go.globex.com", workspace_id=ws.id))
    session.commit()
    return ws


@pytest.fixture
def auth_headers(user):
    from referral_api.core.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


@pytest.fixture
def stage_onboarding(session, workspace):
    """Stage onboarding answers for ``workspace``; keyword overrides win over defaults."""
    from referral_api.services.programs.onboarding import stage_onboarding as _stage

    def _stage_onboarding(**overrides):
        payload = {**ONBOARDING_DEFAULTS, **overrides}
        payload = {k: v for k, v in payload.items() if v is not None}
        return _stage(session, workspace, payload)

    return _stage_onboarding


@pytest.fixture
def program(session, workspace):
    """An already provisioned program with a Partner Links folder."""
    from referral_api.models import Folder, FolderAccessLevel, Program
    folder = Folder(name="Partner Links", workspace_id=workspace.id, access_level=FolderAccessLevel.write)
    session.add(folder)
    session.flush()
    prog = Program(
        workspace_id=workspace.id,
        name="Acme Partners",
        slug=workspace.slug,
        domain="refer.acme.com",
        url="https://acme.com/",
        cookie_length=90,
        default_folder_id=folder.id,
    )
    session.add(prog)
    workspace.default_program_id = prog.id
    session.add(workspace)
    session.commit()
    return prog


@pytest.fixture
def fake_redis(monkeypatch):
    """Dict-backed stand-in for the fail-open Redis helpers used by the program cache."""
    from referral_api.services.programs import cache

    store = {}

    def _setex(key, ttl, value):
        store[key] = value
        return True

    def _delete(key):
        return store.pop(key, None) is not None

    monkeypatch.setattr(cache, "redis_get", store.get)
    monkeypatch.setattr(cache, "redis_setex", _setex)
    monkeypatch.setattr(cache, "redis_delete", _delete)
    return store


# --- Network controls --------------------------------------------------------
LOCAL_PATTERNS = (
    re.compile(r"^http://(localhost|127\.0\.0\.1)"),
    re.compile(r"^https://(localhost|127\.0\.0\.1)"),
)


@pytest.fixture(autouse=True)
def no_real_http(request):
    """Block all real HTTP by default using requests-mock.

    External calls must be explicitly stubbed in tests; localhost passes through.
    """
    with requests_mock.Mocker(real_http=False) as m:
        for pat in LOCAL_PATTERNS:
            m.register_uri(requests_mock.ANY, pat, real_http=True)
        setattr(request.node, "_requests_mocker", m)
        yield m


@pytest.fixture(scope="function")
def requests_mocker(no_real_http):
    """The active requests-mock Mocker (the autouse ``no_real_http`` one)."""
    return no_real_http
