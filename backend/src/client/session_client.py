"""
Async client for the user API, mirroring the web login/sign-up form.

The form has two modes. In ``login`` mode it needs email and password, and a
successful submit stores the returned user. In ``signup`` mode it needs all four
fields, and a successful submit flips the form back to ``login``. Credentials
are validated locally before anything is sent.
"""
import logging
from typing import Any, Literal

import httpx

logger = logging.getLogger(__name__)

USER_API_PATH = "/api/v1/user"

FormMode = Literal["login", "signup"]


class FormError(Exception):
    """Raised when a submit fails, locally or on the server."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionClient:
    """
    Holds the form mode, the logged-in user, and the session cookie.

    Pass an existing ``httpx.AsyncClient`` (e.g. one bound to an ASGI app in
    tests) or a ``base_url`` to have one created and owned by this object.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url)
        self.mode: FormMode = "login"
        self.user: dict[str, Any] | None = None

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this object created it."""
        if self._owns_client:
            await self._http.aclose()

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    def toggle_mode(self) -> FormMode:
        """Switch between login and sign-up."""
        self.mode = "signup" if self.mode == "login" else "login"
        return self.mode

    async def submit(
        self,
        email: str = "",
        password: str = "",
        name: str = "",
        username: str = "",
    ) -> str:
        """Submit the form in its current mode; returns the server's message."""
        if self.mode == "login":
            if not (email and password):
                raise FormError("Email and password are required.")
            data = await self._post("/login", {"email": email, "password": password})
            self.user = data.get("user")
            logger.info("client_logged_in")
        else:
            if not (name and username and email and password):
                raise FormError("All fields are required.")
            data = await self._post(
                "/register",
                {"name": name, "username": username, "email": email, "password": password},
            )
            self.mode = "login"
            logger.info("client_registered")
        return data.get("message", "")

    async def logout(self) -> str:
        """End the session and forget the user."""
        data = await self._post("/logout", {})
        self.user = None
        self._http.cookies.clear()
        return data.get("message", "")

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._http.post(f"{USER_API_PATH}{path}", json=payload)
        except httpx.HTTPError as e:
            logger.warning("client_request_failed", extra={"path": path, "error": str(e)})
            raise FormError("An error occurred. Please try again.") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error or not data.get("success", False):
            raise FormError(
                data.get("message") or "An error occurred. Please try again.",
                status_code=response.status_code,
            )
        return data
