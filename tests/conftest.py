import pytest
from fastapi.testclient import TestClient

from studentscope.database import Database
from studentscope.main import create_app


@pytest.fixture
def database(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'studentscope-test.db'}")
    database.create_schema()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def db(database):
    with database.session() as session:
        yield session


@pytest.fixture
def client(database):
    app = create_app(database=database, seed_users=True, cleanup_interval_minutes=0)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login_as(client):
    """Log in and return request headers carrying that session's cookie.

    The client's own cookie jar is cleared so each request states its session.
    """
    def _login_as(username: str, password: str = '123') -> dict:
        response = client.post('/api/auth/login', json={'username': username, 'password': password})
        assert response.status_code == 200, response.text
        client.cookies.clear()
        token = response.headers['set-cookie'].split(';', 1)[0].split('=', 1)[1]
        return {'Cookie': f'sessionToken={token}'}

    return _login_as
