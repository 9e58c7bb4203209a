"""
Credential verification for the admin area.
The middleware only asks a verifier whether a request is authorized, so the static
Basic scheme can be swapped for another scheme without touching the routes.
"""

import base64
import binascii
import secrets
from typing import Optional, Tuple

from starlette.requests import Request

from homefinder.utils.exceptions import UnauthorizedError


def parse_basic_authorization(header: str) -> Tuple[str, str]:
    """
    Decode an HTTP Basic Authorization header value.

    Returns:
        (username, password)

    Raises:
        ValueError: If the header is not well-formed Basic credentials
    """
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        raise ValueError("Not a Basic authorization header")

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise ValueError("Credentials are not valid base64 UTF-8")

    username, separator, password = decoded.partition(":")
    if not separator:
        raise ValueError("Credentials have no ':' separator")
    return username, password


class CredentialVerifier:
    """Interface: raise UnauthorizedError unless the request may enter the admin area."""

    async def verify(self, request: Request) -> None:
        raise NotImplementedError


class StaticCredentialVerifier(CredentialVerifier):
    """HTTP Basic check against one configured username/password pair."""

    def __init__(self, username: Optional[str], password: Optional[str], realm: str = "Admin Area"):
        self.username = username
        self.password = password
        self.realm = realm

    @property
    def challenge(self) -> str:
        return f'Basic realm="{self.realm}", charset="UTF-8"'

    async def verify(self, request: Request) -> None:
        header = request.headers.get("authorization")
        if not header:
            raise UnauthorizedError("Not authorized", challenge=self.challenge)

        try:
            username, password = parse_basic_authorization(header)
        except ValueError:
            raise UnauthorizedError("Invalid auth header")

        # Unconfigured credentials never match
        if not self.username or not self.password:
            raise UnauthorizedError("Invalid credentials")

        user_ok = secrets.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        pass_ok = secrets.compare_digest(password.encode("utf-8"), self.password.encode("utf-8"))
        if not (user_ok and pass_ok):
            raise UnauthorizedError("Invalid credentials")
