from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from coachapp.db.session import Base
from coachapp.db import models


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db_session):
    counter = {"value": 0}

    def factory(role=models.UserRole.user):
        counter["value"] += 1
        user = models.User(email=f"{role.value}{counter['value']}@example.com", role=role)
        db_session.add(user)
        db_session.commit()
        return user

    return factory


@pytest.fixture()
def make_coach(db_session, make_user):
    def factory(hourly_rate=120, onboarding_complete=True):
        coach = make_user(models.UserRole.coach)
        profile = models.CoachProfile(
            user_id=coach.id,
            hourly_rate=Decimal(hourly_rate) if hourly_rate is not None else None,
            onboarding_complete=onboarding_complete,
        )
        db_session.add(profile)
        db_session.commit()
        return coach

    return factory


@pytest.fixture()
def sqlite_file_url(tmp_path):
    return f"sqlite+pysqlite:///{tmp_path / 'coachapp.db'}"


@pytest.fixture()
def file_session_factory(sqlite_file_url):
    engine = create_engine(
        sqlite_file_url,
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    FileSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield FileSessionLocal
    finally:
        engine.dispose()
