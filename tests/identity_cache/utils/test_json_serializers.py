"""Tests for json_serializer."""

import json
from datetime import UTC, date, datetime
from pathlib import Path

from identity_cache.types import CredentialType
from identity_cache.utils import json_serializer


class TestJsonSerializer:

    def test_datetime(self):
        value = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert json_serializer(value) == "2024-01-01T12:00:00+00:00"

    def test_date(self):
        assert json_serializer(date(2024, 1, 1)) == "2024-01-01"

    def test_enum(self):
        assert json_serializer(CredentialType.OIDC_ID_TOKEN) == "idtoken"

    def test_set_sorted(self):
        assert json_serializer({"b", "a"}) == ["a", "b"]

    def test_path(self):
        assert json_serializer(Path("/var/log")) == "/var/log"

    def test_fallback_str(self):
        class Opaque:
            def __str__(self):
                return "opaque"

        assert json_serializer(Opaque()) == "opaque"

    def test_json_dumps_default(self):
        payload = {"types": {CredentialType.OAUTH2_ACCESS_TOKEN}}
        assert json.loads(json.dumps(payload, default=json_serializer)) == {"types": ["accesstoken"]}
