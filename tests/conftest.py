import sqlite3

import pytest
from fastapi.testclient import TestClient

from othershorts.app.config import settings
from othershorts.app.db import connect, init_db
from othershorts.users.store import hash_google_id


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "app.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{path}")
    return str(path)


@pytest.fixture
def conn(db_path):
    c = connect(db_path)
    init_db(c)
    c.execute("INSERT INTO countries(id, name) VALUES(1, 'Romania'), (2, 'Japan')")
    c.commit()
    yield c
    c.close()


def make_user(c: sqlite3.Connection, google_id: str, country_id=1, age=30, gender="f") -> str:
    user_id = hash_google_id(google_id)
    c.execute(
        "INSERT INTO users(google_raw_id, google_hash, age, gender, country_id) VALUES(?,?,?,?,?)",
        (google_id, user_id, age if country_id else None, gender if country_id else None, country_id),
    )
    c.commit()
    return user_id


def add_videos(c: sqlite3.Connection, user_id: str, video_ids) -> list:
    urls = [f"https://www.youtube.com/shorts/{vid}" for vid in video_ids]
    c.executemany("INSERT INTO videos(url, user_id) VALUES(?, ?)", [(u, user_id) for u in urls])
    c.commit()
    return urls


def vid(prefix: str, n: int) -> str:
    """11-char fake video id, e.g. vid('a', 3) -> 'a0000000003'"""
    return f"{prefix}{n:0{11 - len(prefix)}d}"


@pytest.fixture
def client(conn):
    from othershorts.app.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
