# fcm_client/client.py
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from .config import DEFAULT_TIMEOUT, ClientConfig
from .credentials import IID, LEGACY, V1, CredentialResolver
from .errors import InvalidRecipient, MissingProjectId
from .responses import ResponseEnvelope, normalize
from .validation import validate_condition, validate_topic

logger = logging.getLogger(__name__)

RECIPIENT_KEYS = ("token", "topic", "condition")
LEGACY_RECIPIENT_KEYS = ("to", "registration_ids", "condition")
TOPIC_PREFIX = "/topics/"


def _as_list(registration_ids: Union[str, List[str]]) -> List[str]:
    if isinstance(registration_ids, str):
        return [registration_ids]
    return list(registration_ids)


def check_recipient(message: Mapping[str, Any]) -> None:
    """A v1 message needs exactly one valid token, topic or condition."""
    present = [key for key in RECIPIENT_KEYS if key in message]
    if len(present) != 1:
        raise InvalidRecipient(
            f"message must contain exactly one of {', '.join(RECIPIENT_KEYS)}; got {present or 'none'}"
        )
    if "topic" in message:
        validate_topic(message["topic"])
    elif "condition" in message:
        validate_condition(message["condition"])


def _check_legacy_options(options: Optional[Mapping[str, Any]]) -> None:
    # the recipient comes from the method, never from options
    clash = [key for key in LEGACY_RECIPIENT_KEYS if key in (options or {})]
    if clash:
        raise InvalidRecipient(f"recipient fields not allowed in options: {', '.join(clash)}")


class FCMClient:
    """Firebase Cloud Messaging client.

    Legacy endpoints authenticate with the server API key, v1 and Instance ID
    endpoints with a service account bearer token. Every call returns a
    ResponseEnvelope, whatever the HTTP status; only malformed local input
    raises, and it does so before anything is sent.

    ``auth`` replaces the credential resolver (anything with an
    ``authorization_header(api)`` method) and ``transport`` the httpx
    transport, which is how tests run without network.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        credentials: Any = None,
        project_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        config: Optional[ClientConfig] = None,
        auth=None,
        credentials_factory=None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if config is None:
            config = ClientConfig(
                api_key=api_key,
                credentials=credentials,
                project_id=project_id,
                timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
            )
        elif any(v is not None for v in (api_key, credentials, project_id, timeout)):
            raise TypeError("pass either config or api_key/credentials/project_id/timeout, not both")
        self.config = config
        self._auth = auth if auth is not None else CredentialResolver(config, credentials_factory=credentials_factory)
        self._transport = transport

    @classmethod
    def from_env(cls, **kwargs) -> "FCMClient":
        return cls(config=ClientConfig.from_env(), **kwargs)

    # ---------- transport ----------

    def _request(
        self,
        method: str,
        url: str,
        api: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> ResponseEnvelope:
        headers = {
            "Content-Type": "application/json",
            "Authorization": self._auth.authorization_header(api),
        }
        if api == IID and headers["Authorization"].startswith("Bearer "):
            headers["access_token_auth"] = "true"
        if extra_headers:
            headers.update(extra_headers)

        content = json.dumps(body) if body is not None else None

        logger.debug("FCM %s %s", method, url)
        with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
            r = client.request(method, url, headers=headers, content=content, params=params)
        if r.status_code >= 400:
            logger.warning("FCM %s %s error: %s %s", method, url, r.status_code, r.text)
        return normalize(r.status_code, r.text, r.headers)

    def _legacy_send(self, body: Dict[str, Any]) -> ResponseEnvelope:
        return self._request("POST", f"{self.config.legacy_base_url}/send", LEGACY, body=body)

    def _v1_send(self, message: Dict[str, Any]) -> ResponseEnvelope:
        url = f"{self.config.v1_base_url}{self._project_id()}/messages:send"
        return self._request("POST", url, V1, body={"message": message})

    def _project_id(self) -> str:
        project_id = self.config.project_id or getattr(self._auth, "project_id", None)
        if not project_id:
            raise MissingProjectId("project_id is required for the v1 send endpoint")
        return project_id

    def _iid_url(self, path: str) -> str:
        return f"{self.config.instance_id_base_url}/iid/{path}"

    # ---------- legacy send ----------

    def send_notification(
        self,
        registration_ids: Union[str, List[str]],
        options: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        _check_legacy_options(options)
        body = {"registration_ids": _as_list(registration_ids)}
        body.update(options or {})
        return self._legacy_send(body)

    send = send_notification

    def send_with_notification_key(
        self,
        notification_key: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        if notification_key.startswith(TOPIC_PREFIX):
            validate_topic(notification_key[len(TOPIC_PREFIX):])
        _check_legacy_options(options)
        body = {"to": notification_key}
        body.update(options or {})
        return self._legacy_send(body)

    def send_legacy_to_topic(self, topic: str, options: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        validate_topic(topic)
        return self.send_with_notification_key(f"{TOPIC_PREFIX}{topic}", options)

    def send_legacy_to_condition(
        self,
        condition: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        validate_condition(condition)
        _check_legacy_options(options)
        body = {"condition": condition}
        body.update(options or {})
        return self._legacy_send(body)

    # ---------- v1 send ----------

    def send_v1(self, message: Dict[str, Any]) -> ResponseEnvelope:
        check_recipient(message)
        return self._v1_send(message)

    send_notification_v1 = send_v1

    def send_to_topic(self, topic: str, options: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        validate_topic(topic)
        message = {"topic": topic}
        message.update(options or {})
        return self._v1_send(message)

    def send_to_topic_condition(
        self,
        condition: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        validate_condition(condition)
        message = {"condition": condition}
        message.update(options or {})
        return self._v1_send(message)

    # ---------- instance ID ----------

    def get_instance_id_info(
        self,
        iid_token: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        return self._request("GET", self._iid_url(f"info/{iid_token}"), IID, params=options or None)

    def _manage_topic_relationship(self, topic: str, registration_ids: List[str], action: str) -> ResponseEnvelope:
        validate_topic(topic)
        body = {"to": f"{TOPIC_PREFIX}{topic}", "registration_tokens": _as_list(registration_ids)}
        return self._request("POST", self._iid_url(f"v1:batch{action}"), IID, body=body)

    def topic_subscription(self, topic: str, registration_id: str) -> ResponseEnvelope:
        validate_topic(topic)
        url = self._iid_url(f"v1/{registration_id}/rel/topics/{topic}")
        return self._request("POST", url, IID)

    def topic_unsubscription(self, topic: str, registration_id: str) -> ResponseEnvelope:
        return self.batch_topic_unsubscription(topic, [registration_id])

    def batch_topic_subscription(self, topic: str, registration_ids: List[str]) -> ResponseEnvelope:
        return self._manage_topic_relationship(topic, registration_ids, "Add")

    def batch_topic_unsubscription(self, topic: str, registration_ids: List[str]) -> ResponseEnvelope:
        return self._manage_topic_relationship(topic, registration_ids, "Remove")

    def subscribe_instance_id_to_topic(self, iid_token: str, topic: str) -> ResponseEnvelope:
        return self.batch_subscribe_instance_ids_to_topic([iid_token], topic)

    def unsubscribe_instance_id_from_topic(self, iid_token: str, topic: str) -> ResponseEnvelope:
        return self.batch_unsubscribe_instance_ids_from_topic([iid_token], topic)

    def batch_subscribe_instance_ids_to_topic(self, instance_ids: List[str], topic: str) -> ResponseEnvelope:
        return self._manage_topic_relationship(topic, instance_ids, "Add")

    def batch_unsubscribe_instance_ids_from_topic(self, instance_ids: List[str], topic: str) -> ResponseEnvelope:
        return self._manage_topic_relationship(topic, instance_ids, "Remove")

    # ---------- device groups ----------

    def _group_request(
        self,
        method: str,
        project_id: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ResponseEnvelope:
        url = f"{self.config.group_base_url}/notification"
        return self._request(
            method, url, LEGACY, body=body, params=params, extra_headers={"project_id": project_id}
        )

    def create_notification_key(
        self,
        key_name: str,
        project_id: str,
        registration_ids: Optional[List[str]] = None,
    ) -> ResponseEnvelope:
        body = {
            "registration_ids": _as_list(registration_ids or []),
            "operation": "create",
            "notification_key_name": key_name,
        }
        return self._group_request("POST", project_id, body=body)

    def add_registration_ids(
        self,
        key_name: str,
        project_id: str,
        notification_key: str,
        registration_ids: List[str],
    ) -> ResponseEnvelope:
        body = {
            "registration_ids": _as_list(registration_ids),
            "operation": "add",
            "notification_key_name": key_name,
            "notification_key": notification_key,
        }
        return self._group_request("POST", project_id, body=body)

    def remove_registration_ids(
        self,
        key_name: str,
        project_id: str,
        notification_key: str,
        registration_ids: List[str],
    ) -> ResponseEnvelope:
        body = {
            "registration_ids": _as_list(registration_ids),
            "operation": "remove",
            "notification_key_name": key_name,
            "notification_key": notification_key,
        }
        return self._group_request("POST", project_id, body=body)

    def recover_notification_key(self, key_name: str, project_id: str) -> ResponseEnvelope:
        return self._group_request("GET", project_id, params={"notification_key_name": key_name})
