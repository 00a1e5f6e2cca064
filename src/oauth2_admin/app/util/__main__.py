import argparse
import asyncio
import logging
from typing import List

from pydantic import ValidationError as PydanticValidationError
from redis import asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from oauth2_admin.app.cli import configure_logging
from oauth2_admin.app.config import Settings
from oauth2_admin.app.csrf import bind_csrf_token
from oauth2_admin.errors import AdminException, from_pydantic
from oauth2_admin.model.base import Base
from oauth2_admin.service.clients import CreateClientRequest, create_client
from oauth2_admin.service.users import CreateUserRequest, create_user

logger = logging.getLogger(__name__)


async def createTables(settings: Settings) -> None:
    engine = create_async_engine(settings.pg_dsn)
    try:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()
    print("Tables created")


async def createUser(settings: Settings, username: str, password: str, role: str) -> None:
    request = CreateUserRequest(username=username, password=password, role=role)
    engine = create_async_engine(settings.pg_dsn)
    database_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    try:
        async with database_session_maker() as database_session:
            user = await create_user(database_session, request)
    finally:
        await engine.dispose()
    print(f"{user.username} ({user.role}) created: {user.id}")


async def createClient(
    settings: Settings,
    name: str,
    redirect_uris: List[str],
    grant_types: List[str],
    response_types: List[str],
    scopes: str,
) -> None:
    request = CreateClientRequest(
        name=name,
        redirect_uris=redirect_uris,
        grant_types=grant_types,
        response_types=response_types,
        scopes=scopes,
    )
    engine = create_async_engine(settings.pg_dsn)
    database_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    try:
        async with database_session_maker() as database_session:
            client = await create_client(database_session, request)
    finally:
        await engine.dispose()
    print(f"{client.name} created")
    print(f"client_id: {client.client_id}")
    print(f"client_secret: {client.client_secret}")
    print("The client secret is not stored and cannot be shown again.")


async def bindCsrfToken(settings: Settings, session_id: str, actor_id: str, expires_in: int) -> None:
    redis_client = redis.Redis.from_url(str(settings.redis_dsn))
    try:
        token = await bind_csrf_token(
            redis_client,
            settings,
            session_id,
            actor_id=actor_id or None,
            expires_in=expires_in or None,
        )
    finally:
        await redis_client.aclose()
    print(token)


async def realMain() -> None:
    parser = argparse.ArgumentParser(
        prog="oauth2-admin-util", description="OAuth2 administration utilities"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    _ = subparsers.add_parser("create-tables", help="Create any missing tables")

    create_user_parser = subparsers.add_parser("create-user", help="Create a user")
    create_user_parser.add_argument("username", help="The username of the new account.")
    create_user_parser.add_argument("password", help="The initial password.")
    create_user_parser.add_argument(
        "--role", choices=["admin", "user"], default="user", help="The account role."
    )

    create_client_parser = subparsers.add_parser(
        "create-client", help="Register an OAuth2 client"
    )
    create_client_parser.add_argument("name", help="The client display name.")
    create_client_parser.add_argument(
        "--redirect-uri",
        dest="redirect_uris",
        action="append",
        required=True,
        help="A redirect URI. Repeat for more than one.",
    )
    create_client_parser.add_argument(
        "--grant-type",
        dest="grant_types",
        action="append",
        default=None,
        help="A grant type. Repeat for more than one. Defaults to authorization_code.",
    )
    create_client_parser.add_argument(
        "--response-type",
        dest="response_types",
        action="append",
        default=None,
        help="A response type. Repeat for more than one. Defaults to code.",
    )
    create_client_parser.add_argument(
        "--scopes", default="", help="Space-delimited scopes, e.g. 'openid profile'."
    )

    bind_parser = subparsers.add_parser(
        "bind-csrf-token", help="Bind an anti-forgery token to an operator session"
    )
    bind_parser.add_argument("session_id", help="The operator session id.")
    bind_parser.add_argument("--actor-id", default="", help="Operator recorded in the audit trail.")
    bind_parser.add_argument(
        "--expires-in", type=int, default=0, help="Session lifetime in seconds."
    )

    args = vars(parser.parse_args())
    command = args.get("command", None)

    settings = Settings()  # type: ignore

    try:
        if command == "create-tables":
            await createTables(settings)
        elif command == "create-user":
            await createUser(settings, args["username"], args["password"], args["role"])
        elif command == "create-client":
            await createClient(
                settings,
                args["name"],
                args["redirect_uris"],
                args["grant_types"] or ["authorization_code"],
                args["response_types"] or ["code"],
                args["scopes"],
            )
        elif command == "bind-csrf-token":
            await bindCsrfToken(
                settings, args["session_id"], args["actor_id"], args["expires_in"]
            )
    except AdminException as e:
        logger.error("%s failed: %s", command, e.description)
        raise SystemExit(1)
    except PydanticValidationError as e:
        logger.error("%s failed: %s", command, from_pydantic(e).description)
        raise SystemExit(1)


def main() -> None:
    configure_logging()
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
