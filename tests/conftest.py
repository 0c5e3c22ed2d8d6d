import io
import os
import tempfile

# settings are read at import time, so the environment goes first
UPLOAD_DIR = tempfile.mkdtemp(prefix="vecinity-uploads-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ["UPLOAD_PATH"] = UPLOAD_DIR
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["EMAIL_PROVIDER"] = "smtp"

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from vecinity.core.security import hash_password, make_token
from vecinity.db.base import Base
from vecinity.db.session import get_db, make_engine, make_session_factory
from vecinity.main import app
from vecinity.models.category import Category
from vecinity.models.report import Report
from vecinity.models.user import User, UserRole, default_preferences
from vecinity.schemas.report import ReportCreate
from vecinity.services import reports as report_svc

PASSWORD = "secret123"


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    factory = make_session_factory(engine)

    def _override_get_db():
        session = factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.usuario, email: str | None = None, is_active: bool = True) -> User:
        counter["n"] += 1
        user = User(
            nombre=f"Vecino {counter['n']}",
            calle="Av. Juárez",
            numero=str(counter["n"]),
            email=email or f"user{counter['n']}@example.com",
            whatsapp="+5215512345678",
            hashed_password=hash_password(PASSWORD),
            role=role,
            is_active=is_active,
            is_verified=True,
            preferences=default_preferences(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user()


@pytest.fixture
def operativo(make_user):
    return make_user(UserRole.admin_operativo)


@pytest.fixture
def general(make_user):
    return make_user(UserRole.admin_general)


@pytest.fixture
def superadmin(make_user):
    return make_user(UserRole.superadmin)


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def category(db, superadmin):
    cat = Category(
        nombre="infraestructura",
        descripcion="Problemas de infraestructura urbana",
        color="#3B82F6",
        icono="building",
        orden=1,
        subcategorias=[
            {"nombre": "calles", "descripcion": "Baches", "icono": "default-sub-icon"},
            {"nombre": "alumbrado", "descripcion": "Luminarias", "icono": "default-sub-icon"},
        ],
        is_active=True,
        created_by=superadmin.id,
    )
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


def report_form(category_id: int, **overrides) -> dict:
    data = {
        "titulo": "Bache en la avenida",
        "descripcion": "Bache profundo frente al mercado municipal",
        "direccion": "Av. Juárez 120, Centro",
        "latitud": "19.4326",
        "longitud": "-99.1332",
        "categoria_id": str(category_id),
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_report(db, category):
    def _make(owner: User, **overrides) -> Report:
        fields = {
            "titulo": "Bache en la avenida",
            "descripcion": "Bache profundo frente al mercado municipal",
            "direccion": "Av. Juárez 120, Centro",
            "latitud": 19.4326,
            "longitud": -99.1332,
            "categoria_id": category.id,
        }
        fields.update(overrides)
        return report_svc.create(db, ReportCreate(**fields), owner)

    return _make


def image_bytes(size=(1600, 900), fmt="PNG", mode="RGB", color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color if mode == "RGB" else (200, 30, 30, 128)).save(buf, format=fmt)
    return buf.getvalue()
