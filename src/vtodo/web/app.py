"""FastAPI application exposing TaskStore operations to the web UI."""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vtodo.tasks.task_api import set_status, task_detail_view, task_view
from vtodo.tasks.task_models import TaskStatus, TaskValidationError
from vtodo.tasks.task_store import TaskStore
from vtodo.web.models import (
    DetailContentRequest,
    MoveRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
)

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(store: TaskStore) -> FastAPI:
    """
    Build the API app around a store.

    Routes are plain `def` handlers, so FastAPI runs them in its thread pool;
    the store serializes its own writes.

        app = create_app(TaskStore(project_dir))
        uvicorn.run(app, port=3456)
    """
    app = FastAPI(title="vtodo", docs_url=None, redoc_url=None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return _error(400, f"Invalid request body: {exc.errors()}")

    @app.exception_handler(TaskValidationError)
    async def invalid_task(request: Request, exc: TaskValidationError):
        return _error(400, str(exc))

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, str(exc))

    @app.get("/api/tasks")
    def list_tasks():
        tasks = store.read_all().tasks
        return {"success": True, "tasks": [task_view(t) for t in tasks]}

    @app.get("/api/tasks/{task_id}")
    def get_task(task_id: str):
        task = store.get_by_id(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
        return {"success": True, "task": task_detail_view(store, task)}

    @app.post("/api/tasks")
    def create_task(body: TaskCreateRequest):
        data = body.model_dump(exclude_none=True)
        if not data.get("title"):
            data["title"] = "Untitled Task"
        task = store.add(data)
        return {"success": True, "task": task.to_dict()}

    @app.put("/api/tasks/{task_id}")
    def update_task(task_id: str, body: TaskUpdateRequest):
        updates = body.model_dump(exclude_unset=True)
        task = store.update(task_id, updates)
        if task is None:
            raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
        return {"success": True, "task": task.to_dict()}

    @app.delete("/api/tasks/{task_id}")
    def delete_task(task_id: str):
        if not store.delete(task_id):
            raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
        return {"success": True}

    @app.post("/api/tasks/{task_id}/move")
    def move_task(task_id: str, body: MoveRequest):
        if body.status not in TaskStatus.values():
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Use: {', '.join(TaskStatus.values())}",
            )
        task = set_status(store, task_id, body.status)
        if task is None:
            raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
        return {"success": True, "task": task.to_dict()}

    @app.post("/api/tasks/{task_id}/archive")
    def archive_task(task_id: str):
        if not store.archive(task_id):
            raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
        return {"success": True}

    @app.put("/api/tasks/{task_id}/detail")
    def update_detail(task_id: str, body: DetailContentRequest):
        if not body.content:
            raise HTTPException(status_code=400, detail="Content is required")
        if store.get_by_id(task_id) is None:
            raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
        store.write_detail_file(task_id, body.content)
        return {"success": True}

    return app
