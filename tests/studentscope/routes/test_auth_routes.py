from studentscope.auth.authenticator import get_user_by_username
from studentscope.routes.auth_routes import cookie_is_secure


def _token_from(response) -> str:
    return response.headers['set-cookie'].split(';', 1)[0].split('=', 1)[1]


def test_root_reports_api_running(client) -> None:
    response = client.get('/')

    assert response.status_code == 200
    assert response.json() == {'status': 'StudentScope API Running'}


def test_login_with_seeded_admin_sets_session_cookie(client) -> None:
    response = client.post('/api/auth/login', json={'username': 'admin', 'password': '123'})

    assert response.status_code == 200
    assert response.json() == {'message': 'Login successful', 'role': 'admin', 'username': 'admin'}

    set_cookie = response.headers['set-cookie']
    assert set_cookie.startswith('sessionToken=')
    assert 'HttpOnly' in set_cookie
    assert 'SameSite=Strict' in set_cookie
    assert 'Max-Age=86400' in set_cookie
    assert 'Path=/' in set_cookie
    assert 'secure' not in set_cookie.lower().replace('samesite', '')
    assert len(_token_from(response)) == 64


def test_me_returns_identity_for_session_cookie(client, db) -> None:
    login_response = client.post('/api/auth/login', json={'username': 'admin', 'password': '123'})
    token = _token_from(login_response)
    client.cookies.clear()

    response = client.get('/api/auth/me', headers={'Cookie': f'sessionToken={token}'})

    assert response.status_code == 200
    body = response.json()
    assert body['username'] == 'admin'
    assert body['role'] == 'admin'
    assert body['userId'] == get_user_by_username(db, 'admin').id


def test_login_with_wrong_password_returns_401_without_cookie(client) -> None:
    response = client.post('/api/auth/login', json={'username': 'admin', 'password': 'wrong'})

    assert response.status_code == 401
    assert response.json() == {'error': 'Invalid credentials'}
    assert 'set-cookie' not in response.headers


def test_login_with_unknown_username_matches_wrong_password_response(client) -> None:
    unknown = client.post('/api/auth/login', json={'username': 'ghost', 'password': '123'})
    wrong = client.post('/api/auth/login', json={'username': 'admin', 'password': 'nope'})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()


def test_login_is_case_sensitive_on_username(client) -> None:
    response = client.post('/api/auth/login', json={'username': 'Admin', 'password': '123'})

    assert response.status_code == 401


def test_login_rejects_missing_fields(client) -> None:
    response = client.post('/api/auth/login', json={'username': 'admin'})

    assert response.status_code == 400
    assert 'error' in response.json()


def test_login_rejects_blank_username(client) -> None:
    response = client.post('/api/auth/login', json={'username': '  ', 'password': '123'})

    assert response.status_code == 400
    assert response.json() == {'error': 'Username and password are required.'}


def test_login_marks_cookie_secure_behind_tls_proxy(client) -> None:
    response = client.post(
        '/api/auth/login',
        json={'username': 'admin', 'password': '123'},
        headers={'X-Forwarded-Proto': 'https'},
    )

    assert response.status_code == 200
    assert '; secure' in response.headers['set-cookie'].lower()


def test_cookie_is_secure_honours_forced_setting(monkeypatch) -> None:
    class _Request:
        headers = {}
        url = type('Url', (), {'scheme': 'http'})()

    monkeypatch.setattr('studentscope.core.config.SESSION_COOKIE_SECURE', 'true')
    assert cookie_is_secure(_Request()) is True

    monkeypatch.setattr('studentscope.core.config.SESSION_COOKIE_SECURE', 'auto')
    assert cookie_is_secure(_Request()) is False


def test_me_without_cookie_returns_401(client) -> None:
    response = client.get('/api/auth/me')

    assert response.status_code == 401
    assert response.json() == {'error': 'Unauthorized'}


def test_me_with_unknown_token_returns_401(client) -> None:
    response = client.get('/api/auth/me', headers={'Cookie': 'sessionToken=' + 'a' * 64})

    assert response.status_code == 401


def test_role_cookie_alone_does_not_authenticate(client) -> None:
    response = client.get('/api/auth/me', headers={'Cookie': 'role=admin; userId=1'})

    assert response.status_code == 401


def test_logout_clears_cookie_and_invalidates_session(client, login_as) -> None:
    headers = login_as('admin')

    response = client.post('/api/auth/logout', headers=headers)

    assert response.status_code == 200
    assert response.json() == {'message': 'Logout successful'}
    set_cookie = response.headers['set-cookie']
    assert set_cookie.startswith('sessionToken=')
    assert 'Max-Age=0' in set_cookie
    assert 'SameSite=Strict' in set_cookie

    assert client.get('/api/auth/me', headers=headers).status_code == 401


def test_logout_without_session_still_succeeds(client) -> None:
    response = client.post('/api/auth/logout')

    assert response.status_code == 200
    assert response.json() == {'message': 'Logout successful'}
    assert 'Max-Age=0' in response.headers['set-cookie']


def test_each_login_creates_an_independent_session(client, login_as) -> None:
    first = login_as('teacher')
    second = login_as('teacher')

    client.post('/api/auth/logout', headers=first)

    assert client.get('/api/auth/me', headers=first).status_code == 401
    assert client.get('/api/auth/me', headers=second).status_code == 200


def test_request_password_reset_acknowledges_unknown_users_identically(client) -> None:
    known = client.post('/api/auth/request-password-reset', json={'username': 'student', 'newPassword': 'fresh'})
    unknown = client.post('/api/auth/request-password-reset', json={'username': 'ghost', 'newPassword': 'fresh'})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_request_password_reset_requires_new_password(client) -> None:
    response = client.post('/api/auth/request-password-reset', json={'username': 'student', 'newPassword': ''})

    assert response.status_code == 400
    assert response.json() == {'error': 'New password is required.'}
