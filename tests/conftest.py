import os
import tempfile
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="reviewhub_test_"))
_db_path = _tmpdir / "test.db"

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_db_path.as_posix()}")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", str(_tmpdir / "logs"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from reviewhub.core.rate_limit import limiter
from reviewhub.core.security import get_password_hash
from reviewhub.db.base import Base
from reviewhub.db.session import SessionLocal, engine
from reviewhub.main import create_app
from reviewhub.models import Subject, SubjectType, User
from reviewhub.models.enums import UserRole


@pytest.fixture()
def clean_db():
    limiter.reset()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(clean_db):
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(clean_db):
    app = create_app()
    with TestClient(app) as c:
        yield c


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client, email: str, password: str = "password123") -> dict[str, str]:
    r = client.post("/auth/register", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    return auth_header(r.json()["access_token"])


def user_id(client, headers: dict[str, str]) -> str:
    r = client.get("/me", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["id"]


def promote(db, uid: str, role: UserRole) -> None:
    db.expire_all()
    user = db.get(User, uid)
    user.role = role.value
    db.commit()


def make_user(db, email: str) -> User:
    user = User(email=email, password_hash=get_password_hash("password123"))
    db.add(user)
    db.commit()
    return user


def make_subject(db, *, subject_id: int | None = None, type_key: str = "restaurant", slug: str | None = None) -> Subject:
    st = db.scalar(select(SubjectType).where(SubjectType.key == type_key))
    if st is None:
        st = SubjectType(key=type_key, display_name=type_key.title())
        db.add(st)
        db.flush()
    subject = Subject(
        id=subject_id,
        subject_type_id=st.id,
        name=f"Subject {slug or subject_id or ''}".strip(),
        slug=slug or f"{type_key}-{subject_id or 'x'}",
    )
    db.add(subject)
    db.commit()
    return subject
