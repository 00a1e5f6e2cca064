from aiohttp import web

from oauth2_admin.app.config import DatabaseSessionMakerAppKey, MetricsClientAppKey
from oauth2_admin.app.handlers.helpers import actor_from_request, read_request
from oauth2_admin.service.users import (
    CreateUserRequest,
    UpdateUserRequest,
    create_user,
    delete_user,
    get_user,
    list_users,
    update_user,
)


async def handle_list_users(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        views = await list_users(database_session)
    return web.json_response([view.model_dump(mode="json") for view in views])


async def handle_create_user(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    create_request = await read_request(request, CreateUserRequest)
    async with database_session_maker() as database_session:
        created = await create_user(
            database_session, create_request, actor_from_request(request)
        )
    request.app[MetricsClientAppKey].increment("admin.user.created", 1)
    return web.json_response(created.model_dump(mode="json"), status=201)


async def handle_get_user(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        view = await get_user(database_session, request.match_info["user_id"])
    return web.json_response(view.model_dump(mode="json"))


async def handle_update_user(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    update_request = await read_request(request, UpdateUserRequest)
    async with database_session_maker() as database_session:
        view = await update_user(
            database_session,
            request.match_info["user_id"],
            update_request,
            actor_from_request(request),
        )
    request.app[MetricsClientAppKey].increment("admin.user.updated", 1)
    return web.json_response(view.model_dump(mode="json"))


async def handle_delete_user(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        await delete_user(
            database_session,
            request.match_info["user_id"],
            actor_from_request(request),
        )
    request.app[MetricsClientAppKey].increment("admin.user.deleted", 1)
    return web.Response(status=204)
