"""
Key-based login handshake.

The handshake is two requests:

    POST /v1/login {username}
        -> {secret: <challenge>}      (404 if the account does not exist)
    POST /v1/authenticate {username, secret: HMAC-SHA256(key, challenge), createIfMissing}
        -> {jwt: <token>}

The resulting token is sent as the Authorization header on every later
request made through the same Context. The same authenticator is reused
to log in to federated peers under the same username.
"""

import hashlib
import hmac
from pathlib import Path

from pipebomb.core.exceptions import AuthenticationError
from pipebomb.core.logger import get_logger


logger = get_logger(__name__)


class KeyAuthenticator:
    """
    Logs in with a private key shared between the user and their servers.

    Attributes:
        key: Raw key bytes.
    """

    def __init__(self, key: str | bytes) -> None:
        if isinstance(key, str):
            key = key.encode("utf-8")
        if not key:
            raise ValueError("key must not be empty")
        self.key = key

    @classmethod
    def from_file(cls, path: Path) -> "KeyAuthenticator":
        return cls(path.read_bytes().strip())

    def sign(self, challenge: str) -> str:
        return hmac.new(self.key, challenge.encode("utf-8"), hashlib.sha256).hexdigest()

    async def authenticate(self, context, username: str, create_if_missing: bool = False) -> str:
        """
        Run the handshake and install the token on the context.

        Args:
            context: The Context to authenticate.
            username: Account name.
            create_if_missing: Ask the server to register the account if it
                               does not exist yet.

        Returns:
            The token.

        Raises:
            AuthenticationError: If either step is refused.
        """
        login = await context.make_request("post", "v1/login", {"username": username})
        challenge = ""
        if login.status_code == 200 and isinstance(login.response, dict):
            challenge = login.response.get("secret") or ""
        elif not (login.status_code == 404 and create_if_missing):
            raise AuthenticationError(
                f"Login refused by {context.address}: {login.status_code} {login.status_message}",
                username=username,
                details={"host": context.address, "status_code": login.status_code}
            )

        reply = await context.make_request("post", "v1/authenticate", {
            "username": username,
            "secret": self.sign(challenge),
            "createIfMissing": create_if_missing,
        })
        token = reply.response.get("jwt") if isinstance(reply.response, dict) else None
        if reply.status_code not in (200, 201) or not isinstance(token, str):
            raise AuthenticationError(
                f"Authentication refused by {context.address}: {reply.status_code} {reply.status_message}",
                username=username,
                details={"host": context.address, "status_code": reply.status_code}
            )

        context.token = token
        context.username = username
        context.authenticator = self
        logger.info(f"Authenticated as {username} on {context.address}")
        return token
