# tests/test_credentials.py
import io
import json
import threading
import time

import pytest

from fcm_client import ClientConfig, CredentialResolver, InvalidCredentialSource, classify_source, resolve_auth_header
from fcm_client.config import SCOPES
from fcm_client.credentials import IID, LEGACY, V1

from conftest import SERVICE_ACCOUNT_INFO, FakeCredentials


# ----------------- SOURCE CLASSIFICATION -----------------


def test_existing_path_is_a_file_source(service_account_file):
    source = classify_source(str(service_account_file))
    assert source.kind == "file"
    assert source.load() == SERVICE_ACCOUNT_INFO


def test_pathlike_is_a_file_source(service_account_file):
    assert classify_source(service_account_file).kind == "file"


def test_stream_is_used_as_is():
    stream = io.StringIO(json.dumps(SERVICE_ACCOUNT_INFO))
    source = classify_source(stream)
    assert source.kind == "stream"
    assert source.value is stream
    assert source.load()["client_email"] == SERVICE_ACCOUNT_INFO["client_email"]


def test_raw_json_text_is_decoded():
    source = classify_source(json.dumps(SERVICE_ACCOUNT_INFO))
    assert source.kind == "info"
    assert source.value == SERVICE_ACCOUNT_INFO


def test_mapping_is_accepted():
    assert classify_source(SERVICE_ACCOUNT_INFO).kind == "info"


@pytest.mark.parametrize("source", ["path/to/json/key.json", "not json", "[1, 2]", 42])
def test_unusable_source_is_rejected(source):
    with pytest.raises(InvalidCredentialSource):
        classify_source(source)


def test_malformed_stream_fails_on_load():
    source = classify_source(io.StringIO("hey"))
    with pytest.raises(InvalidCredentialSource):
        source.load()


# ----------------- RESOLVER -----------------


def test_resolver_needs_some_credentials():
    with pytest.raises(InvalidCredentialSource):
        CredentialResolver(ClientConfig())


def test_invalid_source_fails_at_construction():
    with pytest.raises(InvalidCredentialSource):
        CredentialResolver(ClientConfig(api_key="LEGACY_KEY", credentials="missing.json"))


def test_legacy_key_header_without_token_fetch(fake_factory):
    resolver = CredentialResolver(ClientConfig(api_key="LEGACY_KEY"), credentials_factory=fake_factory)
    for api in (LEGACY, V1, IID):
        assert resolver.authorization_header(api) == "key=LEGACY_KEY"
    assert fake_factory.calls == []


def test_resolve_auth_header_helper():
    assert resolve_auth_header(ClientConfig(api_key="LEGACY_KEY")) == "key=LEGACY_KEY"


def test_resolve_auth_header_reloads_each_call(monkeypatch):
    calls = []

    def factory(info, scopes):
        calls.append(info)
        return FakeCredentials()

    monkeypatch.setattr("fcm_client.credentials.make_credentials", factory)
    config = ClientConfig(credentials=SERVICE_ACCOUNT_INFO)

    assert resolve_auth_header(config, V1) == "Bearer access_token"
    assert resolve_auth_header(config, V1) == "Bearer access_token"
    assert len(calls) == 2

    resolver = CredentialResolver(config)
    resolver.authorization_header(V1)
    resolver.authorization_header(V1)
    assert len(calls) == 3


def test_service_account_bearer_header(service_account_file, fake_factory):
    resolver = CredentialResolver(
        ClientConfig(credentials=str(service_account_file)),
        credentials_factory=fake_factory,
    )
    assert resolver.authorization_header(V1) == "Bearer access_token"
    assert resolver.authorization_header(IID) == "Bearer access_token"
    # no API key: legacy endpoints fall back to the bearer token as well
    assert resolver.authorization_header(LEGACY) == "Bearer access_token"

    info, scopes = fake_factory.calls[0]
    assert info == SERVICE_ACCOUNT_INFO
    assert scopes == SCOPES
    assert len(fake_factory.calls) == 1
    # token is fetched once and reused while the credentials report it valid
    assert fake_factory.credentials.refreshes == 1


def test_api_key_and_service_account_split_by_family(fake_factory):
    resolver = CredentialResolver(
        ClientConfig(api_key="LEGACY_KEY", credentials=SERVICE_ACCOUNT_INFO),
        credentials_factory=fake_factory,
    )
    assert resolver.authorization_header(LEGACY) == "key=LEGACY_KEY"
    assert resolver.authorization_header(V1) == "Bearer access_token"


def test_expired_token_is_refreshed(fake_factory):
    resolver = CredentialResolver(ClientConfig(credentials=SERVICE_ACCOUNT_INFO), credentials_factory=fake_factory)
    resolver.authorization_header(V1)
    fake_factory.credentials.token = None
    fake_factory.credentials._next_token = "second_token"
    assert resolver.authorization_header(V1) == "Bearer second_token"
    assert fake_factory.credentials.refreshes == 2


def test_project_id_from_service_account(fake_factory):
    resolver = CredentialResolver(ClientConfig(credentials=SERVICE_ACCOUNT_INFO), credentials_factory=fake_factory)
    assert resolver.project_id == "sa-project"


def test_credentials_resolved_once_under_concurrency():
    calls = []

    def slow_factory(info, scopes):
        calls.append(info)
        time.sleep(0.05)
        return FakeCredentials()

    resolver = CredentialResolver(ClientConfig(credentials=SERVICE_ACCOUNT_INFO), credentials_factory=slow_factory)
    headers = []
    threads = [
        threading.Thread(target=lambda: headers.append(resolver.authorization_header(V1)))
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert headers == ["Bearer access_token"] * 8


# ----------------- ENVIRONMENT -----------------


def test_config_from_env(monkeypatch, service_account_file):
    monkeypatch.setenv("FCM_API_KEY", "ENV_KEY")
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(service_account_file))
    monkeypatch.setenv("FIREBASE_PROJECT_ID", "env-project")
    monkeypatch.setenv("FCM_TIMEOUT", "5")

    config = ClientConfig.from_env()
    assert config.api_key == "ENV_KEY"
    assert config.credentials == str(service_account_file)
    assert config.project_id == "env-project"
    assert config.timeout == 5.0


def test_config_from_env_defaults(monkeypatch):
    for name in ("FCM_API_KEY", "GOOGLE_APPLICATION_CREDENTIALS", "FIREBASE_PROJECT_ID", "FCM_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    config = ClientConfig.from_env()
    assert config.api_key is None
    assert config.credentials is None
    assert config.timeout == 30.0
