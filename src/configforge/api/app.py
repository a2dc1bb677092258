"""FastAPI application exposing generic CRUD routes for Models.

Authentication and privilege checks happen upstream; this layer only turns
HTTP requests into Model operations and ConfigForgeErrors into the error
payload.
"""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from configforge.client import SYSTEM_CLIENT, Client
from configforge.errors import ConfigForgeError
from configforge.models import Model
from configforge.store import ConfigStore

logger = logging.getLogger(__name__)

ClientResolver = Callable[[Request], Client]


class ModelRequest(BaseModel):
    """Request body for create and update operations."""
    data: dict[str, Any]


class ResponsePayload(BaseModel):
    """Success envelope, shaped like the error payload."""
    code: int = 200
    status: str = "ok"
    response_id: str = "SUCCESS"
    message: str = ""
    data: Any = None


def default_client_resolver(request: Request) -> Client:
    """Identify the caller by the X-Configforge-User header and peer address."""
    username = request.headers.get("X-Configforge-User", SYSTEM_CLIENT.username)
    ip_address = request.client.host if request.client else SYSTEM_CLIENT.ip_address
    return Client(username=username, ip_address=ip_address)


def model_slug(model_class: type[Model]) -> str:
    """URL segment for a model ("Static Route" -> "static-routes")."""
    name = model_class.verbose_name_plural if model_class.many else model_class.verbose_name
    return name.lower().replace(" ", "-")


def create_model_router(
    model_class: type[Model],
    store: ConfigStore,
    resolve_client: ClientResolver,
) -> APIRouter:
    """Create the CRUD router for one Model class."""
    slug = model_slug(model_class)
    router = APIRouter(prefix=f"/api/{slug}", tags=[slug])

    if not model_class.many:

        @router.get("")
        def read_singleton(request: Request) -> ResponsePayload:
            obj = model_class(client=resolve_client(request), store=store)
            return ResponsePayload(data=obj.to_representation())

        @router.patch("")
        def update_singleton(body: ModelRequest, request: Request, apply: bool = False) -> ResponsePayload:
            obj = model_class(data=body.data, client=resolve_client(request), store=store)
            obj.update(apply=apply)
            return ResponsePayload(
                message=f"Modified {model_class.verbose_name}",
                data=obj.to_representation(),
            )

        return router

    @router.get("")
    def list_objects(request: Request) -> ResponsePayload:
        objects = model_class.read_all(store, resolve_client(request))
        return ResponsePayload(data=objects.to_representation())

    @router.post("")
    def create_object(body: ModelRequest, request: Request, apply: bool = False) -> ResponsePayload:
        data = {key: value for key, value in body.data.items() if key != "id"}
        obj = model_class(data=data, client=resolve_client(request), store=store)
        obj.create(apply=apply)
        return ResponsePayload(
            message=f"Added {model_class.verbose_name}",
            data=obj.to_representation(),
        )

    @router.get("/{object_id}")
    def read_object(object_id: int, request: Request) -> ResponsePayload:
        obj = model_class(id=object_id, client=resolve_client(request), store=store)
        return ResponsePayload(data=obj.to_representation())

    @router.patch("/{object_id}")
    def update_object(
        object_id: int, body: ModelRequest, request: Request, apply: bool = False
    ) -> ResponsePayload:
        # Existence is checked up front so an unknown id is a 404, not a partial create
        model_class(id=object_id, store=store)
        obj = model_class(data={**body.data, "id": object_id}, client=resolve_client(request), store=store)
        obj.update(apply=apply)
        return ResponsePayload(
            message=f"Modified {model_class.verbose_name}",
            data=obj.to_representation(),
        )

    @router.delete("/{object_id}")
    def delete_object(object_id: int, request: Request, apply: bool = False) -> ResponsePayload:
        obj = model_class(id=object_id, client=resolve_client(request), store=store)
        obj.delete(apply=apply)
        return ResponsePayload(
            message=f"Deleted {model_class.verbose_name}",
            data=obj.to_representation(),
        )

    return router


def create_app(
    store: ConfigStore,
    models: list[type[Model]],
    client_resolver: ClientResolver | None = None,
) -> FastAPI:
    """Build the API application for the given Models."""
    app = FastAPI(title="configforge", description="Model-driven configuration API")
    resolve_client = client_resolver or default_client_resolver

    @app.exception_handler(ConfigForgeError)
    async def handle_configforge_error(request: Request, exc: ConfigForgeError) -> JSONResponse:
        if exc.code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.code, content=exc.to_dict())

    @app.get("/api/health")
    def health_check() -> dict[str, Any]:
        return {"status": "healthy", "models": [model.__name__ for model in models]}

    for model_class in models:
        app.include_router(create_model_router(model_class, store, resolve_client))

    return app
