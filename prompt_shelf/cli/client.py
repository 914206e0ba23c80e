"""API client for the PromptShelf REST API."""

from __future__ import annotations

from typing import Any

import httpx


class ShelfAPIError(RuntimeError):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, detail: str, code: str | None = None) -> None:
        super().__init__(f"API error ({status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail
        self.code = code


class ShelfClient:
    """HTTP client wrapping the PromptShelf API endpoints."""

    def __init__(self, base_url: str = "http://localhost:8400", auth_token: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._client = httpx.Client(base_url=f"{self.base_url}/api/v1", headers=headers, timeout=30)

    def _handle(self, resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            try:
                body = resp.json()
                detail, code = body.get("detail", resp.text), body.get("code")
            except ValueError:
                detail, code = resp.text, None
            raise ShelfAPIError(resp.status_code, str(detail), code)
        if resp.status_code == 204:
            return None
        return resp.json()

    # --- Auth ---

    def signup(self, email: str, password: str, name: str | None = None) -> dict:
        return self._handle(
            self._client.post("/auth/signup", json={"email": email, "password": password, "name": name})
        )

    def login(self, email: str, password: str) -> dict:
        return self._handle(self._client.post("/auth/login", json={"email": email, "password": password}))

    def me(self) -> dict:
        return self._handle(self._client.get("/auth/me"))

    # --- Libraries ---

    def list_libraries(self) -> dict:
        return self._handle(self._client.get("/libraries"))

    def create_library(self, data: dict) -> dict:
        return self._handle(self._client.post("/libraries", json=data))

    def get_library(self, library_id: str) -> dict:
        return self._handle(self._client.get(f"/libraries/{library_id}"))

    def unlock_library(self, library_id: str, password: str) -> dict:
        return self._handle(
            self._client.post(f"/libraries/{library_id}/unlock", json={"password": password})
        )

    # --- Sharing ---

    def list_shares(self, library_id: str) -> dict:
        return self._handle(self._client.get(f"/libraries/{library_id}/shares"))

    def invite(self, library_id: str, email: str, permission: str) -> dict:
        return self._handle(
            self._client.post(
                f"/libraries/{library_id}/shares",
                json={"email": email, "permission": permission},
            )
        )

    def update_share(self, library_id: str, user_id: str, permission: str) -> dict:
        return self._handle(
            self._client.put(
                f"/libraries/{library_id}/shares/{user_id}", json={"permission": permission}
            )
        )

    def revoke_share(self, library_id: str, user_id: str) -> None:
        self._handle(self._client.delete(f"/libraries/{library_id}/shares/{user_id}"))

    def get_invite(self, token: str) -> dict:
        return self._handle(self._client.get(f"/invites/{token}"))

    def accept_invite(self, token: str) -> dict:
        return self._handle(self._client.post("/invites/accept", json={"token": token}))

    # --- Prompts ---

    def list_prompts(self, **params: Any) -> list[dict]:
        return self._handle(self._client.get("/prompts", params=params))

    def create_prompt(self, data: dict) -> dict:
        return self._handle(self._client.post("/prompts", json=data))

    # --- Search ---

    def search(self, library_id: str, query: str, favorites: bool = False) -> dict:
        params: dict[str, Any] = {"library_id": library_id, "q": query}
        if favorites:
            params["favorites"] = "true"
        return self._handle(self._client.get("/prompts/search", params=params))
