# fcm_client/config.py
import os
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

BASE_URI = "https://fcm.googleapis.com/fcm"
BASE_URI_V1 = "https://fcm.googleapis.com/v1/projects/"
INSTANCE_ID_API = "https://iid.googleapis.com"
GROUP_NOTIFICATION_BASE_URI = "https://android.googleapis.com/gcm"

SCOPES = ["https://www.googleapis.com/auth/firebase.messaging"]
DEFAULT_TIMEOUT = 30.0


class ClientConfig(BaseModel):
    """Settings held by one client for its whole lifetime.

    ``credentials`` is the service account source: a path to the JSON key
    file, an open stream, the raw JSON text or an already decoded mapping.
    ``project_id`` is only needed for the v1 send endpoint.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    api_key: Optional[str] = None
    credentials: Any = None
    project_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    legacy_base_url: str = BASE_URI
    v1_base_url: str = BASE_URI_V1
    instance_id_base_url: str = INSTANCE_ID_API
    group_base_url: str = GROUP_NOTIFICATION_BASE_URI

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        FCM_API_KEY=legacy-server-key
        GOOGLE_APPLICATION_CREDENTIALS=/run/secrets/service-account.json
        FIREBASE_PROJECT_ID=my-project
        FCM_TIMEOUT=30
        """
        return cls(
            api_key=os.environ.get("FCM_API_KEY") or None,
            credentials=os.environ.get("GOOGLE_APPLICATION_CREDENTIALS") or None,
            project_id=os.environ.get("FIREBASE_PROJECT_ID") or None,
            timeout=float(os.environ.get("FCM_TIMEOUT", DEFAULT_TIMEOUT)),
        )
