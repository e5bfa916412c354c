"""
Token issuance responses and the identity data carried in them.

A TokenResponse is what the cache write path consumes. It is normally built
from the raw JSON returned by a token endpoint with TokenResponse.from_response;
the raw payload is validated with pydantic before anything is derived from it.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field

from identity_cache.errors import InvalidIdTokenError

DEFAULT_EXPIRES_IN_SECONDS = 3600


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


@dataclass(frozen=True)
class ClientInfo:
    """
    Decoded client_info: the user's object id (uid) and tenant id (utid).

    The home account id is "<uid>.<utid>".
    """

    uid: str = ""
    utid: str = ""

    @classmethod
    def from_encoded(cls, encoded: str | None) -> "ClientInfo":
        """
        Decode base64url-encoded client_info JSON.

        Returns an empty ClientInfo for a missing or undecodable value, which
        makes the derived home account id empty and the write path refuse it.
        """
        if not encoded:
            return cls()
        try:
            data = json.loads(_b64url_decode(encoded))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls(uid=str(data.get("uid", "")), utid=str(data.get("utid", "")))

    @property
    def home_account_id(self) -> str:
        if not self.uid or not self.utid:
            return ""
        return f"{self.uid}.{self.utid}"


@dataclass(frozen=True)
class IDToken:
    """
    ID token with its claims.

    Claims are read without signature verification: the token was just
    received from the token endpoint over TLS and is only used to label the
    cached account.
    """

    raw_token: str = ""
    claims: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_raw(cls, raw_token: str | None) -> "IDToken":
        """
        Decode an ID token.

        Args:
            raw_token: Compact JWT, or None/"" when the response carried none

        Returns:
            IDToken instance (empty claims when raw_token is empty)

        Raises:
            InvalidIdTokenError: If a non-empty token cannot be decoded
        """
        if not raw_token:
            return cls()
        try:
            claims = jwt.get_unverified_claims(raw_token)
        except JWTError as e:
            raise InvalidIdTokenError("ID token could not be decoded", cause=e) from e
        return cls(raw_token=raw_token, claims=dict(claims))

    @property
    def local_account_id(self) -> str:
        """Object id of the user ("oid"), falling back to the subject."""
        return str(self.claims.get("oid") or self.claims.get("sub") or "")

    @property
    def preferred_username(self) -> str:
        return str(self.claims.get("preferred_username") or "")


class TokenResponsePayload(BaseModel):
    """Schema for the JSON body returned by a token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    refresh_token: str = ""
    id_token: str = ""
    token_type: str = "Bearer"
    expires_in: int = Field(default=DEFAULT_EXPIRES_IN_SECONDS, ge=0)
    ext_expires_in: int | None = Field(default=None, ge=0)
    scope: str = ""
    client_info: str = ""
    foci: str = Field(default="", description="Family id when the client is in a family")


@dataclass(frozen=True)
class TokenResponse:
    """
    Completed token issuance, as consumed by the cache write path.

    Attributes:
        access_token: Access token secret ("" when absent)
        refresh_token: Refresh token secret ("" when absent)
        id_token: Decoded ID token
        expires_on: UTC time the access token expires
        ext_expires_on: UTC time the extended lifetime ends
        granted_scopes: Scopes the server granted
        client_info: Decoded client_info
        family_id: Family id ("" when the client is not in a family)
    """

    access_token: str
    expires_on: datetime
    ext_expires_on: datetime
    granted_scopes: tuple[str, ...]
    refresh_token: str = ""
    id_token: IDToken = field(default_factory=IDToken)
    client_info: ClientInfo = field(default_factory=ClientInfo)
    family_id: str = ""

    @classmethod
    def from_response(
        cls,
        response: dict[str, Any],
        requested_scopes: tuple[str, ...] | list[str] = (),
        now: datetime | None = None,
    ) -> "TokenResponse":
        """
        Create a TokenResponse from a token endpoint JSON body.

        Args:
            response: Decoded JSON body
            requested_scopes: Used as granted scopes when the body has no "scope"
            now: Issue time (default: current UTC time)

        Returns:
            TokenResponse instance

        Raises:
            pydantic.ValidationError: If the body does not match the schema
            InvalidIdTokenError: If the ID token cannot be decoded
        """
        payload = TokenResponsePayload.model_validate(response)
        now = now or datetime.now(UTC)

        ext_expires_in = (
            payload.ext_expires_in
            if payload.ext_expires_in is not None
            else payload.expires_in
        )
        granted = tuple(payload.scope.split()) if payload.scope else tuple(requested_scopes)

        return cls(
            access_token=payload.access_token,
            refresh_token=payload.refresh_token,
            id_token=IDToken.from_raw(payload.id_token),
            expires_on=now + timedelta(seconds=payload.expires_in),
            ext_expires_on=now + timedelta(seconds=ext_expires_in),
            granted_scopes=granted,
            client_info=ClientInfo.from_encoded(payload.client_info),
            family_id=payload.foci,
        )

    def has_access_token(self) -> bool:
        return bool(self.access_token)

    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    @property
    def home_account_id(self) -> str:
        return self.client_info.home_account_id

    def __repr__(self) -> str:
        return (
            f"TokenResponse(home_account_id={self.home_account_id!r}, "
            f"granted_scopes={self.granted_scopes!r}, family_id={self.family_id!r}, "
            f"expires_on={self.expires_on.isoformat()!r})"
        )


__all__ = [
    "DEFAULT_EXPIRES_IN_SECONDS",
    "ClientInfo",
    "IDToken",
    "TokenResponsePayload",
    "TokenResponse",
]
