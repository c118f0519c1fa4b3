from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from todogame.errors import InvalidTaskError, StoreError
from todogame.models.task import BatchRequest, TaskCreate, TaskUpdate
from todogame.observability import (
    configure_uvicorn_logging,
    get_json_logger,
    get_metrics,
    use_request_context,
)
from todogame.store.interface import TodoStore
from todogame.store.query import TaskQuery


# ----------------------------
# Request parsing helpers
# ----------------------------
def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    ctx = first.get("ctx") or {}
    if isinstance(ctx, dict) and ctx.get("error") is not None:
        return str(ctx["error"])
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    msg = str(first.get("msg", "invalid request"))
    return f"{'.'.join(loc)}: {msg}" if loc else msg


def _parse_priority(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise InvalidTaskError("priority must be an integer") from None


def _parse_task_id(raw: str) -> int:
    """Path ids that are not integers name no task."""
    value = raw.strip()
    if value.removeprefix("-").isdecimal():
        try:
            return int(value)
        except ValueError:  # beyond the int digit limit
            pass
    raise HTTPException(status_code=404, detail="task not found")


def _parse_archived(raw: str | None) -> bool | None:
    if raw is None:
        return None
    return raw.strip().lower() == "true"


def build_query(
    *,
    filter: str | None = None,
    sort: str | None = None,
    search: str | None = None,
    category: str | None = None,
    priority: str | None = None,
    archived: str | None = None,
) -> TaskQuery:
    """Translate raw query-string values into a TaskQuery."""
    return TaskQuery(
        filter=filter or None,
        sort=sort or None,
        search=search or None,
        category=category or None,
        priority=_parse_priority(priority),
        archived=_parse_archived(archived),
    )


def create_app(store: TodoStore, *, api_prefix: str = "") -> FastAPI:
    app = FastAPI(title="todogame")
    # Configure uvicorn logging at app creation to avoid import-time side effects
    configure_uvicorn_logging()
    logger = get_json_logger("todogame.gateway")
    metrics = get_metrics()
    app.state.store = store

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        store.close()
        logger.info(
            "gateway shutdown",
            extra={"event": "gateway_shutdown", "service": "gateway", "backend": store.backend},
        )

    # ----------------------------
    # Error mapping: every error body is {"error": <message>}
    # ----------------------------
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        metrics.increment("validation_errors", {"path": request.url.path})
        return JSONResponse({"error": _first_error_message(exc)}, status_code=400)

    @app.exception_handler(InvalidTaskError)
    async def _invalid_task(request: Request, exc: InvalidTaskError) -> JSONResponse:
        metrics.increment("validation_errors", {"path": request.url.path})
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(
            "store error",
            extra={
                "event": "store_error",
                "service": "gateway",
                "backend": store.backend,
                "method": request.method,
                "path": request.url.path,
                "attributes": {"error": str(exc)[:200]},
            },
        )
        metrics.increment("store_errors", {"backend": store.backend})
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.middleware("http")
    async def _request_logging(request: Request, call_next: Any) -> Response:
        with use_request_context(request.headers.get("X-Request-ID")) as request_id:
            started = time.perf_counter()
            response: Response = await call_next(request)
            duration_ms = (time.perf_counter() - started) * 1000.0
            logger.info(
                "http request",
                extra={
                    "event": "http_request",
                    "service": "gateway",
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 3),
                },
            )
            metrics.increment(
                "http_requests", {"method": request.method, "status": str(response.status_code)}
            )
            response.headers["X-Request-ID"] = request_id
            return response

    @app.get("/health")
    def health() -> dict[str, str]:  # lightweight healthcheck endpoint
        return {"status": "ok"}

    @app.get("/ready")
    def ready() -> dict[str, str]:
        try:
            store.stats()
        except StoreError as exc:
            logger.error(
                "gateway not ready",
                extra={"event": "gateway_error", "service": "gateway", "path": "ready"},
            )
            metrics.increment("gateway_ready_errors", {"backend": store.backend})
            raise HTTPException(status_code=503, detail="store not ready") from exc
        return {"status": "ok", "backend": store.backend}

    router = APIRouter()

    @router.get("/todos")
    def list_todos(
        filter: str | None = None,
        sort: str | None = None,
        search: str | None = None,
        category: str | None = None,
        priority: str | None = None,
        archived: str | None = None,
    ) -> list[dict[str, Any]]:
        query = build_query(
            filter=filter,
            sort=sort,
            search=search,
            category=category,
            priority=priority,
            archived=archived,
        )
        return [t.to_json() for t in store.list_tasks(query)]

    @router.get("/stats")
    def stats() -> dict[str, Any]:
        return store.stats().to_json()

    @router.get("/categories")
    def categories() -> list[str]:
        return store.categories()

    @router.post("/todos", status_code=201)
    def create_todo(body: TaskCreate) -> dict[str, Any]:
        task = store.create_task(body)
        logger.info(
            "task created",
            extra={"event": "task_created", "service": "gateway", "task_id": task.id},
        )
        metrics.increment("tasks_created", {"backend": store.backend})
        return task.to_json()

    @router.post("/todos/batch")
    def batch(body: BatchRequest) -> dict[str, Any]:
        action = body.action or ""
        count = store.apply_batch(action, body.ids, body.filter)
        logger.info(
            "batch applied",
            extra={
                "event": "task_batch",
                "service": "gateway",
                "action": action,
                "count": count,
                "attributes": {"filter": body.filter, "ids": body.ids or []},
            },
        )
        metrics.increment("task_batches", {"action": action})
        return {"message": f"{count} tasks updated", "count": count}

    @router.put("/todos/{task_id}")
    def update_todo(task_id: str, body: TaskUpdate) -> dict[str, Any]:
        changes = body.changes()
        if not changes:
            raise InvalidTaskError("no fields to update")
        tid = _parse_task_id(task_id)
        task = store.update_task(tid, changes)
        if task is None:
            raise HTTPException(status_code=404, detail="task not found")
        logger.info(
            "task updated",
            extra={
                "event": "task_updated",
                "service": "gateway",
                "task_id": tid,
                "attributes": {"fields": sorted(changes)},
            },
        )
        metrics.increment("tasks_updated", {"backend": store.backend})
        return task.to_json()

    @router.delete("/todos/{task_id}")
    def delete_todo(task_id: str) -> dict[str, Any]:
        tid = _parse_task_id(task_id)
        if not store.delete_task(tid):
            raise HTTPException(status_code=404, detail="task not found")
        logger.info(
            "task deleted",
            extra={"event": "task_deleted", "service": "gateway", "task_id": tid},
        )
        metrics.increment("tasks_deleted", {"backend": store.backend})
        return {"message": "task deleted", "id": tid}

    app.include_router(router, prefix=api_prefix)
    return app


__all__ = ["build_query", "create_app"]
