"""
pytest configuration for identity cache tests.

Adds src directory to Python path for imports and provides shared fixtures.
"""

import base64
import json
import sys
from pathlib import Path

import pytest
from jose import jwt

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from identity_cache.logging import clear_log_context  # noqa: E402
from identity_cache.models import AuthorityInfo, AuthParameters  # noqa: E402
from identity_cache.storage import InMemoryStorageManager  # noqa: E402

NOW = 1_700_000_000
CLIENT_ID = "11111111-aaaa-bbbb-cccc-000000000001"
HOME_ACCOUNT_ID = "uid-1.utid-1"
AUTHORITY = "https://login.contoso.com/tenant-1/"


class RecordingEventSink:
    """Event sink that keeps every emitted event for assertions."""

    def __init__(self):
        self.events = []

    def emit(self, event, **fields):
        self.events.append((event, fields))

    def of(self, event):
        return [fields for emitted, fields in self.events if emitted == event]


def encode_client_info(uid: str, utid: str) -> str:
    raw = json.dumps({"uid": uid, "utid": utid}).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def make_id_token(**claims) -> str:
    return jwt.encode(claims, "test-secret", algorithm="HS256")


@pytest.fixture(autouse=True)
def _clear_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def events():
    """Fresh recording event sink."""
    return RecordingEventSink()


@pytest.fixture
def storage():
    """Fresh in-memory storage."""
    return InMemoryStorageManager()


@pytest.fixture
def clock():
    """Fixed clock returning NOW."""
    return lambda: float(NOW)


@pytest.fixture
def authority_info():
    return AuthorityInfo.from_uri(AUTHORITY)


@pytest.fixture
def auth_params(authority_info):
    """Request for a known account."""
    return AuthParameters(
        client_id=CLIENT_ID,
        authority_info=authority_info,
        scopes=("user.read",),
        home_account_id=HOME_ACCOUNT_ID,
        correlation_id="corr-1234567890",
    )


@pytest.fixture
def token_body():
    """Token endpoint JSON body for HOME_ACCOUNT_ID, valid for one hour."""
    return {
        "access_token": "at-secret",
        "refresh_token": "rt-secret",
        "id_token": make_id_token(
            oid="object-1", sub="subject-1", preferred_username="user@contoso.com"
        ),
        "token_type": "Bearer",
        "expires_in": 3600,
        "ext_expires_in": 7200,
        "scope": "user.read",
        "client_info": encode_client_info("uid-1", "utid-1"),
    }


@pytest.fixture
def make_client_info():
    return encode_client_info


@pytest.fixture
def make_jwt():
    return make_id_token
