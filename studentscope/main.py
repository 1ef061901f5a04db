import asyncio
import contextlib
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from studentscope.auth.sessions import SessionStore
from studentscope.core import config
from studentscope.core.errors import AuthenticationError, StudentScopeError
from studentscope.database import Database
from studentscope.routes import auth_routes, password_reset_routes, profile_routes
from studentscope.seed import seed_default_users

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _sweep_expired_sessions(database: Database) -> int:
    with database.session() as db:
        return SessionStore(db).cleanup_expired()


async def _session_cleanup_loop(database: Database, interval_minutes: int) -> None:
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            await run_in_threadpool(_sweep_expired_sessions, database)
        except Exception:
            logger.exception('Expired session sweep failed')


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Invalid request'
    first = errors[0]
    message = str(first.get('msg', 'Invalid request'))
    return message.removeprefix('Value error, ')


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={'error': _validation_message(exc)})

    @app.exception_handler(StudentScopeError)
    async def handle_app_error(request: Request, exc: StudentScopeError):
        if exc.status_code >= 500:
            logger.error('Request %s %s failed', request.method, request.url.path, exc_info=exc)
        elif isinstance(exc, AuthenticationError):
            logger.debug('Rejected %s %s: %s', request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={'error': exc.public_message})

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        logger.error('Database error on %s %s', request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={'error': 'Internal server error'})


def create_app(
    database: Database | None = None,
    seed_users: bool | None = None,
    cleanup_interval_minutes: int | None = None,
) -> FastAPI:
    database = database or Database(config.DATABASE_URL)
    seed_users = config.SEED_DEFAULT_USERS if seed_users is None else seed_users
    if cleanup_interval_minutes is None:
        cleanup_interval_minutes = config.SESSION_CLEANUP_INTERVAL_MINUTES

    app = FastAPI(title='StudentScope API')
    app.state.database = database
    app.state.cleanup_task = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_error_handlers(app)

    @app.on_event('startup')
    async def initialize_database() -> None:
        try:
            await run_in_threadpool(database.create_schema)
            if seed_users:
                with database.session() as db:
                    await run_in_threadpool(seed_default_users, db)
        except (SQLAlchemyError, StudentScopeError):
            logger.exception('Database initialization failed. Check DATABASE_URL.')
            raise

        if cleanup_interval_minutes > 0:
            app.state.cleanup_task = asyncio.create_task(
                _session_cleanup_loop(database, cleanup_interval_minutes)
            )

    @app.on_event('shutdown')
    async def release_resources() -> None:
        task = app.state.cleanup_task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        database.dispose()

    @app.get('/')
    def root():
        return {'status': 'StudentScope API Running'}

    app.include_router(auth_routes.router, prefix='/api/auth')
    app.include_router(profile_routes.router, prefix='/api/profile')
    app.include_router(password_reset_routes.router, prefix='/api/password-resets')
    return app


def run() -> None:
    import uvicorn

    configure_logging()
    config.validate_runtime_config()
    uvicorn.run(create_app(), host=config.HOST, port=config.PORT)


if __name__ == '__main__':
    run()
