# fcm_client/errors.py
import httpx


class FCMError(Exception):
    """Base class for errors raised locally by the client."""


class InvalidCredentialSource(FCMError):
    """The service account source is neither a file, a stream nor JSON text."""


class MissingProjectId(FCMError):
    """A v1 call was made without a Firebase project id."""


class ValidationError(FCMError, ValueError):
    """Malformed input rejected before any request is issued."""


class InvalidTopicName(ValidationError):
    pass


class InvalidCondition(ValidationError):
    pass


class InvalidRecipient(ValidationError):
    """A v1 message must name exactly one of token, topic or condition."""


# Raised by httpx on connection/DNS failures; never caught by the client.
TransportFailure = httpx.TransportError
