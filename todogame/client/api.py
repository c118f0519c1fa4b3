from __future__ import annotations

from typing import Any

import httpx


class ApiError(RuntimeError):
    """A failed API call.

    ``status`` is the HTTP status, or 0 when the request never got a response.
    ``message`` carries the server's ``error`` text when there is one.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}" if status else message)
        self.status = status
        self.message = message


class TodoApiClient:
    """Thin synchronous wrapper over the task HTTP API.

    Accepts either a base URL or a ready ``httpx.Client`` (tests pass FastAPI's
    ``TestClient``, which is an httpx client bound to the app).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        if client is None:
            if not base_url:
                raise ValueError("base_url or client is required")
            client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self._http = client

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(0, str(exc) or exc.__class__.__name__) from exc
        if resp.status_code >= 400:
            raise ApiError(resp.status_code, self._error_text(resp))
        return resp.json()

    @staticmethod
    def _error_text(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or resp.reason_phrase
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return resp.reason_phrase

    # ----------------------------
    # Reads
    # ----------------------------
    def list_tasks(self, params: dict[str, str] | None = None) -> list[dict[str, Any]]:
        return list(self._request("GET", "/todos", params=params or {}))

    def stats(self) -> dict[str, int]:
        return dict(self._request("GET", "/stats"))

    def categories(self) -> list[str]:
        return [str(c) for c in self._request("GET", "/categories")]

    # ----------------------------
    # Mutations
    # ----------------------------
    def create_task(self, payload: dict[str, Any]) -> dict[str, Any]:
        return dict(self._request("POST", "/todos", json=payload))

    def update_task(self, task_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        return dict(self._request("PUT", f"/todos/{task_id}", json=changes))

    def delete_task(self, task_id: int) -> dict[str, Any]:
        return dict(self._request("DELETE", f"/todos/{task_id}"))

    def batch(
        self, action: str, *, ids: list[int] | None = None, filter: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"action": action}
        if ids:
            payload["ids"] = list(ids)
        if filter:
            payload["filter"] = filter
        return dict(self._request("POST", "/todos/batch", json=payload))


__all__ = ["ApiError", "TodoApiClient"]
