# fcm_client/credentials.py
import json
import logging
import os
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

import google.auth.transport.requests as google_requests
from google.oauth2 import service_account

from .config import SCOPES, ClientConfig
from .errors import InvalidCredentialSource

logger = logging.getLogger(__name__)

# API families, each with its own authentication rule
LEGACY = "legacy"
V1 = "v1"
IID = "iid"


class CredentialSource:
    """A service account source, tagged once with how it must be read.

    kind is one of "file" (value is a path), "stream" (value has read())
    or "info" (value is the decoded JSON mapping).
    """

    __slots__ = ("kind", "value")

    def __init__(self, kind: str, value: Any):
        self.kind = kind
        self.value = value

    def __repr__(self) -> str:
        return f"CredentialSource(kind={self.kind!r})"

    def load(self) -> Dict[str, Any]:
        try:
            if self.kind == "file":
                with open(self.value, "r", encoding="utf-8") as f:
                    info = json.load(f)
            elif self.kind == "stream":
                info = json.load(self.value)
            else:
                info = self.value
        except ValueError as e:
            raise InvalidCredentialSource(f"service account JSON is malformed: {e}") from e
        if not isinstance(info, dict):
            raise InvalidCredentialSource("service account JSON must be an object")
        return info


def classify_source(source: Any) -> CredentialSource:
    """Tag a credential source, trying mapping, file path, stream, JSON text in that order."""
    if isinstance(source, Mapping):
        return CredentialSource("info", dict(source))
    if isinstance(source, (str, os.PathLike)) and os.path.isfile(source):
        return CredentialSource("file", os.fspath(source))
    if hasattr(source, "read"):
        return CredentialSource("stream", source)
    if isinstance(source, (str, bytes)):
        try:
            info = json.loads(source)
        except ValueError:
            info = None
        if isinstance(info, dict):
            return CredentialSource("info", info)
    raise InvalidCredentialSource(
        "credentials must be a path to an existing file, a readable stream or JSON object text"
    )


def make_credentials(info: Dict[str, Any], scopes: List[str]):
    return service_account.Credentials.from_service_account_info(info, scopes=scopes)


class CredentialResolver:
    """Produces the Authorization header value for each outgoing request.

    The legacy API key is used as-is. The service account source is read and
    turned into google-auth credentials on first use only; after that every
    caller shares the same credentials object, which owns token caching and
    expiry.
    """

    def __init__(
        self,
        config: ClientConfig,
        credentials_factory: Optional[Callable[[Dict[str, Any], List[str]], Any]] = None,
    ):
        self._api_key = config.api_key
        self._source = None
        if config.credentials is not None:
            self._source = classify_source(config.credentials)
        if not self._api_key and self._source is None:
            raise InvalidCredentialSource("either an API key or service account credentials are required")

        self._factory = credentials_factory or make_credentials
        self._info: Optional[Dict[str, Any]] = None
        self._credentials = None
        self._init_lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    @property
    def has_service_account(self) -> bool:
        return self._source is not None

    @property
    def project_id(self) -> Optional[str]:
        """Project id declared inside the service account JSON, if any."""
        if self._source is None:
            return None
        self._get_credentials()
        return self._info.get("project_id")

    def _get_credentials(self):
        if self._credentials is not None:
            return self._credentials
        with self._init_lock:
            if self._credentials is None:
                info = self._source.load()
                credentials = self._factory(info, SCOPES)
                self._info = info
                self._credentials = credentials
                logger.info("Service account credentials loaded (source=%s)", self._source.kind)
        return self._credentials

    def fetch_token(self) -> str:
        credentials = self._get_credentials()
        if not credentials.valid:
            with self._refresh_lock:
                if not credentials.valid:
                    credentials.refresh(google_requests.Request())
        return credentials.token

    def authorization_header(self, api: str = LEGACY) -> str:
        if api == LEGACY and self._api_key:
            return f"key={self._api_key}"
        if self._source is None:
            return f"key={self._api_key}"
        return f"Bearer {self.fetch_token()}"


def resolve_auth_header(config: ClientConfig, api: str = LEGACY) -> str:
    """One-shot helper.

    A fresh CredentialResolver is built on every call, so a service account
    source is re-read and a new token fetched each time. Keep a
    CredentialResolver (or an FCMClient) around for repeated requests.
    """
    return CredentialResolver(config).authorization_header(api)
