from aiohttp import web

from oauth2_admin.app.config import DatabaseSessionMakerAppKey, MetricsClientAppKey
from oauth2_admin.app.handlers.helpers import actor_from_request, read_request
from oauth2_admin.service.clients import (
    CreateClientRequest,
    UpdateClientRequest,
    create_client,
    delete_client,
    get_client,
    list_clients,
    update_client,
)


async def handle_list_clients(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        views = await list_clients(database_session)
    return web.json_response([view.model_dump(mode="json") for view in views])


async def handle_create_client(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    create_request = await read_request(request, CreateClientRequest)
    async with database_session_maker() as database_session:
        created = await create_client(
            database_session, create_request, actor_from_request(request)
        )
    request.app[MetricsClientAppKey].increment("admin.client.created", 1)
    return web.json_response(created.model_dump(mode="json"), status=201)


async def handle_get_client(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        view = await get_client(database_session, request.match_info["client_id"])
    return web.json_response(view.model_dump(mode="json"))


async def handle_update_client(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    update_request = await read_request(request, UpdateClientRequest)
    async with database_session_maker() as database_session:
        view = await update_client(
            database_session,
            request.match_info["client_id"],
            update_request,
            actor_from_request(request),
        )
    request.app[MetricsClientAppKey].increment("admin.client.updated", 1)
    return web.json_response(view.model_dump(mode="json"))


async def handle_delete_client(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        await delete_client(
            database_session,
            request.match_info["client_id"],
            actor_from_request(request),
        )
    request.app[MetricsClientAppKey].increment("admin.client.deleted", 1)
    return web.Response(status=204)
