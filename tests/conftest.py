# tests/conftest.py
"""
Configuração do pytest.

O banco dos testes é um SQLite em arquivo temporário; DB_URL precisa estar
no ambiente ANTES de importar o pacote (settings e engine são criados no
import).
"""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="portal-messaging-tests-")
os.environ["DB_URL"] = "sqlite:///" + os.path.join(_TEST_DB_DIR, "test.db")
os.environ["DEBUG"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET"] = "test-secret"

from itertools import count  # noqa: E402

import pytest  # noqa: E402

import portal_messaging.infrastructure.database.models  # noqa: F401, E402
from portal_messaging.api.routes._deps import (  # noqa: E402
    build_broadcast_service,
    build_conversation_service,
    build_group_service,
    build_message_service,
    build_read_tracker,
)
from portal_messaging.core.permissions import RoleName  # noqa: E402
from portal_messaging.infrastructure.database.base_model import BaseModel  # noqa: E402
from portal_messaging.infrastructure.database.models.application_model import ApplicationModel  # noqa: E402
from portal_messaging.infrastructure.database.models.role_model import RoleModel  # noqa: E402
from portal_messaging.infrastructure.database.models.user_model import UserModel  # noqa: E402
from portal_messaging.infrastructure.database.session import get_engine, new_session  # noqa: E402
from portal_messaging.infrastructure.security.jwt_provider import JwtProvider  # noqa: E402

_emails = count(1)


@pytest.fixture(autouse=True)
def _schema():
    engine = get_engine()
    BaseModel.metadata.create_all(engine)
    yield
    BaseModel.metadata.drop_all(engine)


@pytest.fixture
def db(_schema):
    session = new_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# -------------------------
# Fábricas
# -------------------------

@pytest.fixture
def make_user(db):
    roles: dict[str, RoleModel] = {}

    def _make(role: RoleName | str = RoleName.STUDENT, full_name: str | None = None) -> UserModel:
        role_name = RoleName(role).value
        if role_name not in roles:
            role_row = db.query(RoleModel).filter_by(name=role_name).one_or_none()
            if role_row is None:
                role_row = RoleModel(name=role_name)
                db.add(role_row)
                db.flush()
            roles[role_name] = role_row

        n = next(_emails)
        user = UserModel(
            full_name=full_name or f"{role_name.title()} {n}",
            email=f"user{n}@portal.test",
            role_id=roles[role_name].id,
        )
        db.add(user)
        db.flush()
        return user

    return _make


@pytest.fixture
def make_application(db):
    def _make(owner: UserModel) -> ApplicationModel:
        app = ApplicationModel(user_id=owner.id, status="SUBMITTED")
        db.add(app)
        db.flush()
        return app

    return _make


# -------------------------
# Services ligados à sessão de teste
# -------------------------

@pytest.fixture
def messages(db):
    return build_message_service(db)


@pytest.fixture
def conversations(db, messages):
    return build_conversation_service(db, messages)


@pytest.fixture
def groups(db):
    return build_group_service(db)


@pytest.fixture
def broadcasts(db):
    return build_broadcast_service(db)


@pytest.fixture
def tracker(db):
    return build_read_tracker(db)


# -------------------------
# HTTP
# -------------------------

@pytest.fixture
def client(_schema):
    from portal_messaging.main import create_app

    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def api_prefix():
    from portal_messaging.main import API_PREFIX

    return API_PREFIX


@pytest.fixture
def auth_header():
    provider = JwtProvider()

    def _header(user: UserModel, role: RoleName | str) -> dict[str, str]:
        token = provider.issue_access_token(subject=user.id, role=RoleName(role).value)
        return {"Authorization": f"Bearer {token}"}

    return _header
