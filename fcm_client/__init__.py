# fcm_client/__init__.py
from .client import FCMClient, check_recipient
from .config import (
    BASE_URI,
    BASE_URI_V1,
    GROUP_NOTIFICATION_BASE_URI,
    INSTANCE_ID_API,
    SCOPES,
    ClientConfig,
)
from .credentials import CredentialResolver, CredentialSource, classify_source, resolve_auth_header
from .errors import (
    FCMError,
    InvalidCondition,
    InvalidCredentialSource,
    InvalidRecipient,
    InvalidTopicName,
    MissingProjectId,
    TransportFailure,
    ValidationError,
)
from .responses import ResponseEnvelope, canonical_ids, normalize, not_registered_ids
from .validation import validate_condition, validate_topic

__all__ = [
    "BASE_URI",
    "BASE_URI_V1",
    "GROUP_NOTIFICATION_BASE_URI",
    "INSTANCE_ID_API",
    "SCOPES",
    "ClientConfig",
    "CredentialResolver",
    "CredentialSource",
    "FCMClient",
    "FCMError",
    "InvalidCondition",
    "InvalidCredentialSource",
    "InvalidRecipient",
    "InvalidTopicName",
    "MissingProjectId",
    "ResponseEnvelope",
    "TransportFailure",
    "ValidationError",
    "canonical_ids",
    "check_recipient",
    "classify_source",
    "normalize",
    "not_registered_ids",
    "resolve_auth_header",
    "validate_condition",
    "validate_topic",
]
