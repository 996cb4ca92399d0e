# fcm_client/responses.py
import json
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

SUCCESS = "success"
ERROR = "error"
BAD_REQUEST = (
    "Only applies for JSON requests. Indicates that the request could not be parsed as JSON, "
    "or it contained invalid fields."
)
UNAUTHORIZED = "There was an error authenticating the sender account."
UNAVAILABLE = "Server is temporarily unavailable."
INTERNAL_ERROR = "There was an internal error in the FCM server while trying to process the request."


class ResponseEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    response: str
    body: str
    headers: Dict[str, str]
    status_code: int

    @property
    def response_label(self) -> str:
        return self.response

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def retryable(self) -> bool:
        """5xx answers may be retried by the caller."""
        return 500 <= self.status_code <= 599

    def parsed(self) -> Any:
        return json.loads(self.body) if self.body else {}

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def response_label(status_code: int) -> str:
    if status_code == 200:
        return SUCCESS
    if status_code == 400:
        return BAD_REQUEST
    if status_code == 401:
        return UNAUTHORIZED
    if status_code == 503:
        return UNAVAILABLE
    if 500 <= status_code <= 599:
        return INTERNAL_ERROR
    return ERROR


def normalize(status_code: int, body: Optional[str], headers: Optional[Mapping[str, str]]) -> ResponseEnvelope:
    return ResponseEnvelope(
        response=response_label(status_code),
        body=body or "",
        headers=dict(headers or {}),
        status_code=status_code,
    )


# Legacy multicast helpers. normalize() never parses bodies; these are for
# callers that sent to registration_ids and want the per-id results.


def _results(envelope: ResponseEnvelope) -> Dict[str, Any]:
    if not envelope.ok or not envelope.body:
        return {}
    try:
        body = envelope.parsed()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _paired_results(registration_ids: List[str], body: Dict[str, Any]):
    results = body.get("results")
    if not isinstance(results, list):
        return []
    return [(old, result) for old, result in zip(registration_ids, results) if isinstance(result, dict)]


def canonical_ids(envelope: ResponseEnvelope, registration_ids: List[str]) -> List[Dict[str, str]]:
    """Pairs of (old id, canonical id) for ids FCM reports as replaced."""
    body = _results(envelope)
    if not body.get("canonical_ids"):
        return []
    return [
        {"old": old, "new": result["registration_id"]}
        for old, result in _paired_results(registration_ids, body)
        if result.get("registration_id") is not None
    ]


def not_registered_ids(envelope: ResponseEnvelope, registration_ids: List[str]) -> List[str]:
    body = _results(envelope)
    if not body.get("failure"):
        return []
    return [
        old
        for old, result in _paired_results(registration_ids, body)
        if result.get("error") == "NotRegistered"
    ]
