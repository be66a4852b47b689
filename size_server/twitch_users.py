import asyncio
import logging
import time
from typing import Callable, Dict, Optional

import httpx

from size_server.errors import IdentityNotFound, UpstreamUnavailable
from size_server.models.schema_models import Identity

USER_ID_URL = "https://api.twitch.tv/helix/users"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
TOKEN_SCOPE = "user:read:subscriptions"


class TwitchUserResolver:
    """Turns Twitch login names into Identities through the Helix API.

    Lookups are cached for the lifetime of the process. The app access
    token is fetched on first use and fetched again once it expires or
    Helix rejects it.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.http_client = http_client or httpx.AsyncClient(timeout=10.0)
        self.clock = clock
        self.user_cache: Dict[str, Identity] = {}
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    async def resolve_identity(self, name: str) -> Identity:
        """Look up a Twitch user by login name

        Args:
            name (str): Login name as typed in chat

        Raises:
            IdentityNotFound: Twitch knows no user with that name
            UpstreamUnavailable: Twitch could not be asked or answered nonsense

        Returns:
            Identity: The canonical user
        """
        login = name.strip().lower()
        cached = self.user_cache.get(login)
        if cached is not None:
            logging.debug(f"user {name} cached => {cached!r}")
            return cached

        logging.debug(f"looking for {name} from twitch api")
        token = await self.access_token()
        response = await self._request_user(login, token)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            logging.info("twitch rejected the access token, refreshing")
            token = await self.access_token(force_refresh=True)
            response = await self._request_user(login, token)

        if response.status_code != httpx.codes.OK:
            logging.error(f"twitch api request for {name} failed: {response.status_code} {response.text}")
            raise UpstreamUnavailable("twitch api request failed")

        try:
            users = response.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            logging.error(f"{response.text} {e!r}")
            raise UpstreamUnavailable("twitch json response nonsensical") from e

        if not users:
            logging.error(f"no user named {name}")
            raise IdentityNotFound(name)

        user_data = users[-1]
        try:
            identity = Identity(id=user_data["id"], display_name=user_data["display_name"])
        except (KeyError, TypeError) as e:
            logging.error(f"{user_data} {e!r}")
            raise UpstreamUnavailable("twitch json response nonsensical") from e
        logging.debug(f"found user {name} => {identity!r}")
        self.user_cache[login] = identity
        return identity

    async def access_token(self, force_refresh: bool = False) -> str:
        """Return a valid app access token, fetching a new one when needed"""
        async with self._token_lock:
            if (
                not force_refresh
                and self._access_token is not None
                and self.clock() < self._token_expires_at
            ):
                return self._access_token

            params = {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
                "scope": TOKEN_SCOPE,
            }
            try:
                response = await self.http_client.post(TOKEN_URL, data=params)
                response.raise_for_status()
                auth = response.json()
                self._access_token = auth["access_token"]
                self._token_expires_at = self.clock() + float(auth["expires_in"])
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                logging.error(f"Failed to get twitch authorization: {e!r}")
                raise UpstreamUnavailable("twitch authorization failed") from e
            logging.info(f"got twitch access token, expires in {auth['expires_in']}s")
            return self._access_token

    async def _request_user(self, login: str, token: str) -> httpx.Response:
        try:
            return await self.http_client.get(
                USER_ID_URL,
                params={"login": login},
                headers={"Authorization": f"Bearer {token}", "Client-Id": self.client_id},
            )
        except httpx.HTTPError as e:
            logging.error(f"twitch api request for {login} failed: {e!r}")
            raise UpstreamUnavailable("twitch api request failed") from e

    async def aclose(self) -> None:
        await self.http_client.aclose()
