"""
HTTP client for the Shiv Dhaba REST backend.

Wraps httpx.AsyncClient and is the only place that talks to the network:
    - attaches `Authorization: Bearer <access token>` from the TokenStore
    - unwraps the {success, message, data} envelope
    - normalizes every failure into domain.errors (never raw httpx errors)
    - on 401, refreshes the token exactly once and replays the request

Refresh is single-flight: concurrent 401s wait behind the refresh already
in progress and replay with its token, or all fail with its error.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

import httpx

from config import Settings, settings as default_settings
from domain.constants import AUTH_REFRESH
from domain.errors import AppError, AuthError, NetworkError, classify_http_error
from domain.responses import parse_model, unwrap
from models import TokenPair
from services.token_store import TokenStore

logger = logging.getLogger(__name__)


class ApiClient:
    """Async REST client. One instance per signed-in app."""

    def __init__(
        self,
        token_store: TokenStore,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_logout: Optional[Callable[[], Any]] = None,
    ):
        self._settings = settings or default_settings
        self._tokens = token_store
        self._on_logout = on_logout
        self._client = httpx.AsyncClient(
            base_url=self._settings.api_base_url,
            timeout=self._settings.request_timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

        self._refresh_lock = asyncio.Lock()
        self._refresh_generation = 0
        self._refresh_error: Optional[AppError] = None

    @property
    def token_store(self) -> TokenStore:
        return self._tokens

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    # ── Verbs ────────────────────────────────────────────────────────

    async def get(self, path: str, params: Optional[dict] = None, **kwargs) -> Any:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, params: Optional[dict] = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, params=params, **kwargs)

    async def put(self, path: str, json: Any = None, params: Optional[dict] = None, **kwargs) -> Any:
        return await self.request("PUT", path, json=json, params=params, **kwargs)

    async def patch(self, path: str, json: Any = None, params: Optional[dict] = None, **kwargs) -> Any:
        return await self.request("PATCH", path, json=json, params=params, **kwargs)

    async def delete(self, path: str, params: Optional[dict] = None, **kwargs) -> Any:
        return await self.request("DELETE", path, params=params, **kwargs)

    # ── Core ─────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict] = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Send one request and return the envelope's `data`.

        Args:
            method: HTTP verb
            path: Path relative to the API base URL (e.g. '/delivery/status')
            json: Optional JSON body
            params: Optional query parameters (None values are dropped)
            authenticated: Attach the bearer token and handle 401 refresh

        Raises:
            NetworkError, AuthError, ValidationError, NotFoundError, ServerError
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        token = None
        if authenticated:
            await self._refresh_if_expiring()
            token = self._tokens.access_token

        response = await self._send(method, path, json, params, token)

        if response.status_code == 401 and authenticated:
            token = await self._refresh_access_token(stale_token=token)
            response = await self._send(method, path, json, params, token)
            if response.status_code == 401:
                logger.warning(f"{method} {path} still unauthorized after refresh")
                await self.end_session()
                raise classify_http_error(401, _json_or_none(response))

        return self._handle(method, path, response)

    async def _send(
        self,
        method: str,
        path: str,
        json: Any,
        params: Optional[dict],
        token: Optional[str],
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            return await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise NetworkError(details={"reason": "timeout"}) from e
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed without a response: {e}")
            raise NetworkError(details={"reason": str(e)}) from e

    def _handle(self, method: str, path: str, response: httpx.Response) -> Any:
        body = _json_or_none(response)
        if response.status_code >= 400:
            error = classify_http_error(response.status_code, body)
            logger.warning(f"{method} {path} → {response.status_code}: {error.message}")
            raise error
        return unwrap(body, response.status_code)

    # ── Token refresh ────────────────────────────────────────────────

    async def _refresh_if_expiring(self) -> None:
        """
        Refresh ahead of time when the access JWT is about to expire.

        The current token is still valid here, so a network error or 5xx
        only logs and the request goes out with it. A refused refresh
        (AuthError) still ends the session.
        """
        threshold = self._settings.token_refresh_threshold_seconds
        if not (self._tokens.refresh_token and self._tokens.expires_within(threshold)):
            return
        logger.info("Access token close to expiry, refreshing early")
        try:
            await self._refresh_access_token(stale_token=self._tokens.access_token)
        except AuthError:
            raise
        except AppError as e:
            logger.warning(f"Early token refresh failed, using current token: {e.message}")

    async def _refresh_access_token(self, stale_token: Optional[str]) -> str:
        """
        Return a fresh access token, refreshing at most once per stale token.

        Callers that queued behind an in-flight refresh get its outcome
        instead of starting their own.
        """
        generation = self._refresh_generation
        async with self._refresh_lock:
            if self._refresh_generation != generation:
                # A refresh finished while this caller waited
                if self._refresh_error is not None:
                    raise self._refresh_error
                if self._tokens.access_token:
                    return self._tokens.access_token

            current = self._tokens.access_token
            if current and current != stale_token:
                return current

            try:
                pair = await self._exchange_refresh_token()
            except AuthError as e:
                self._refresh_error = e
                await self.end_session()
                raise
            except AppError as e:
                self._refresh_error = e
                raise
            else:
                self._refresh_error = None
            finally:
                self._refresh_generation += 1

            await self._tokens.set_tokens(pair.access_token, pair.refresh_token)
            logger.info("Access token refreshed")
            return pair.access_token

    async def _exchange_refresh_token(self) -> TokenPair:
        refresh_token = self._tokens.refresh_token
        if not refresh_token:
            raise AuthError("No refresh token available")

        response = await self._send("POST", AUTH_REFRESH, {}, None, refresh_token)
        if response.status_code >= 400:
            error = classify_http_error(response.status_code, _json_or_none(response))
            logger.warning(f"Token refresh refused ({response.status_code}): {error.message}")
            if response.status_code in (400, 401, 403):
                raise AuthError(error.message, code=error.code) from error
            raise error

        data = unwrap(_json_or_none(response), response.status_code)
        return parse_model(TokenPair, data)

    async def end_session(self) -> None:
        """
        Clear the session and notify the owner through on_logout.

        Shared by explicit logout and by a refresh the server refused.
        """
        had_session = bool(self._tokens.access_token or self._tokens.refresh_token)
        await self._tokens.clear()
        if had_session and self._on_logout is not None:
            result = self._on_logout()
            if inspect.isawaitable(result):
                await result


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
