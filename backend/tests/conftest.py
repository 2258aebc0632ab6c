import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from campusops import models
from campusops.auth_utils import create_token, hash_password
from campusops.db import Base, build_engine
from campusops.deps import get_db
from campusops.main import app

TEST_DB_URL = "sqlite:///./test_campusops.db"
engine = build_engine(TEST_DB_URL)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(user_id)}"}


@pytest.fixture(autouse=True)
def setup_test_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db():
    with TestingSessionLocal() as session:
        yield session


@pytest.fixture()
def make_user():
    counter = {"n": 0}

    def _make(role: str = "STUDENT", name: str | None = None, **profile) -> int:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        with TestingSessionLocal() as session:
            user = models.User(
                email=f"{name.lower().replace(' ', '.')}@campus.edu",
                name=name,
                password_hash=hash_password("password123"),
                global_role=role,
                **profile,
            )
            session.add(user)
            session.commit()
            return user.id

    return _make


@pytest.fixture()
def make_club():
    def _make(name: str, members: dict[int, str] | None = None) -> int:
        with TestingSessionLocal() as session:
            club = models.Club(name=name, description=f"{name} club")
            session.add(club)
            session.flush()
            for user_id, role in (members or {}).items():
                session.add(models.Membership(user_id=user_id, club_id=club.id, club_role=role))
            session.commit()
            return club.id

    return _make


@pytest.fixture()
def make_resource():
    def _make(name: str, **flags) -> int:
        with TestingSessionLocal() as session:
            resource = models.Resource(name=name, type=flags.pop("type", "ROOM"), **flags)
            session.add(resource)
            session.commit()
            return resource.id

    return _make


@pytest.fixture()
def admin_id(make_user):
    return make_user("ADMIN", name="Admin")
