# tests/test_codeflow.py
import os
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from pytest_mock import MockerFixture
from sqlalchemy.orm import Session

from drive_auth.app import create_app
from drive_auth.auth.resolvers import utcnow
from drive_auth.users import crud as users_crud
from drive_auth.users.models import Credential
from conftest import FAKE_FILES, TEST_USER_ID, csrf_headers, in_one_hour, make_settings, sign_in


@pytest.fixture
def token_flow(mocker: MockerFixture):
    flow_cls = mocker.patch("drive_auth.auth.service.Flow")
    flow_cls.from_client_config.return_value.credentials = Credentials(
        token="access-1",
        refresh_token="refresh-1",
        expiry=in_one_hour(),
        scopes=["https://www.googleapis.com/auth/drive.readonly"],
    )
    return flow_cls


@pytest.fixture
def token_refresh(mocker: MockerFixture):
    def fake_refresh(self, request):
        self.token = "access-2"
        self.expiry = in_one_hour()

    return mocker.patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh)


def store_credential(db: Session, **overrides) -> Credential:
    values = dict(access_token="stored-access", refresh_token="stored-refresh", expiry=in_one_hour())
    values.update(overrides)
    return users_crud.save_credential(db, TEST_USER_ID, **values)


def test_list_files_without_session_is_forbidden(client: TestClient, drive_build):
    response = client.get("/api/listFiles")

    assert response.status_code == 403
    drive_build.assert_not_called()


def test_list_files_before_code_exchange_requires_authorization(
    client: TestClient, verify_id_token, drive_build
):
    sign_in(client)

    response = client.get("/api/listFiles")

    assert response.status_code == 401
    assert response.json() == {"error": "Authorization required"}
    drive_build.assert_not_called()


def test_exchange_code_without_csrf_persists_nothing(
    client: TestClient, db_session: Session, verify_id_token, token_flow
):
    sign_in(client)

    response = client.post("/api/exchangeCode", json={"code": "auth-code"})

    assert response.status_code == 403
    token_flow.from_client_config.assert_not_called()
    assert users_crud.load_credential(db_session, TEST_USER_ID) is None


def test_exchange_code_without_session_is_forbidden(client: TestClient, token_flow):
    response = client.post("/api/exchangeCode", json={"code": "auth-code"}, headers=csrf_headers(client))

    assert response.status_code == 403
    token_flow.from_client_config.assert_not_called()


def test_exchange_code_then_list_files_uses_stored_credential(
    client: TestClient,
    db_session: Session,
    verify_id_token,
    token_flow,
    token_refresh,
    drive_build,
    authorized_http,
):
    sign_in(client)

    exchange = client.post("/api/exchangeCode", json={"code": "auth-code"}, headers=csrf_headers(client))
    assert exchange.status_code == 204
    assert exchange.content == b""

    token_flow.from_client_config.assert_called_once()
    assert token_flow.from_client_config.call_args.kwargs["redirect_uri"] == "postmessage"
    token_flow.from_client_config.return_value.fetch_token.assert_called_once()
    assert token_flow.from_client_config.return_value.fetch_token.call_args.kwargs["code"] == "auth-code"

    credential = users_crud.load_credential(db_session, TEST_USER_ID)
    assert credential.access_token == "access-1"
    assert credential.refresh_token == "refresh-1"

    for _ in range(2):
        response = client.get("/api/listFiles")
        assert response.status_code == 200
        assert response.json() == FAKE_FILES

    token_refresh.assert_not_called()
    assert token_flow.from_client_config.call_count == 1
    assert authorized_http.call_args.args[0].token == "access-1"


def test_exchange_code_rejected_by_google(client: TestClient, db_session: Session, verify_id_token, token_flow):
    from oauthlib.oauth2.rfc6749.errors import InvalidGrantError

    token_flow.from_client_config.return_value.fetch_token.side_effect = InvalidGrantError()
    sign_in(client)

    response = client.post("/api/exchangeCode", json={"code": "used-code"}, headers=csrf_headers(client))

    assert response.status_code == 401
    assert users_crud.load_credential(db_session, TEST_USER_ID) is None


def test_exchange_without_refresh_token_keeps_stored_one(
    client: TestClient, db_session: Session, verify_id_token, token_flow
):
    sign_in(client)
    store_credential(db_session, refresh_token="original-refresh")
    token_flow.from_client_config.return_value.credentials = Credentials(token="access-3", expiry=in_one_hour())

    response = client.post("/api/exchangeCode", json={"code": "auth-code"}, headers=csrf_headers(client))

    assert response.status_code == 204
    db_session.expire_all()
    credential = users_crud.load_credential(db_session, TEST_USER_ID)
    assert credential.access_token == "access-3"
    assert credential.refresh_token == "original-refresh"


def test_expired_credential_is_refreshed_once_and_persisted(
    client: TestClient,
    db_session: Session,
    verify_id_token,
    token_refresh,
    drive_build,
    authorized_http,
):
    sign_in(client)
    store_credential(db_session, expiry=utcnow() - timedelta(minutes=5))

    response = client.get("/api/listFiles")

    assert response.status_code == 200
    assert token_refresh.call_count == 1
    assert authorized_http.call_args.args[0].token == "access-2"

    db_session.expire_all()
    credential = users_crud.load_credential(db_session, TEST_USER_ID)
    assert credential.access_token == "access-2"
    assert credential.refresh_token == "stored-refresh"
    assert credential.expiry > utcnow()

    # The refreshed token is reused on the next call
    client.get("/api/listFiles")
    assert token_refresh.call_count == 1


def test_credential_without_expiry_is_refreshed(
    client: TestClient, db_session: Session, verify_id_token, token_refresh, drive_build, authorized_http
):
    sign_in(client)
    store_credential(db_session, expiry=None)

    assert client.get("/api/listFiles").status_code == 200
    assert token_refresh.call_count == 1


def test_revoked_refresh_token_requires_authorization(
    client: TestClient, db_session: Session, verify_id_token, token_refresh, drive_build
):
    token_refresh.side_effect = RefreshError("invalid_grant: Token has been expired or revoked.")
    sign_in(client)
    store_credential(db_session, expiry=utcnow() - timedelta(minutes=5))

    response = client.get("/api/listFiles")

    assert response.status_code == 401
    drive_build.assert_not_called()
    db_session.expire_all()
    assert users_crud.load_credential(db_session, TEST_USER_ID).access_token == "stored-access"


def test_expired_credential_without_refresh_token_requires_authorization(
    client: TestClient, db_session: Session, verify_id_token, token_refresh, drive_build
):
    sign_in(client)
    store_credential(db_session, refresh_token=None, expiry=utcnow() - timedelta(minutes=5))

    response = client.get("/api/listFiles")

    assert response.status_code == 401
    token_refresh.assert_not_called()
    drive_build.assert_not_called()


def test_app_relaxes_oauthlib_scope_check(monkeypatch):
    monkeypatch.delenv("OAUTHLIB_RELAXED_TOKEN_SCOPE", raising=False)

    create_app(make_settings())

    assert os.environ["OAUTHLIB_RELAXED_TOKEN_SCOPE"] == "1"
