from aiohttp import web

from oauth2_admin.app.config import DatabaseSessionMakerAppKey, SettingsAppKey
from oauth2_admin.service.audit import list_recent_events
from oauth2_admin.service.dashboard import get_stats


async def handle_stats(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    async with database_session_maker() as database_session:
        stats = await get_stats(database_session)
    return web.json_response(stats.model_dump(mode="json"))


async def handle_audit_events(request: web.Request) -> web.Response:
    database_session_maker = request.app[DatabaseSessionMakerAppKey]
    limit = request.app[SettingsAppKey].audit_event_limit
    async with database_session_maker() as database_session:
        events = await list_recent_events(database_session, limit)
    return web.json_response([event.model_dump(mode="json") for event in events])
