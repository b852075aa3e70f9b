"""learntrack API application factory and process entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import redis.asyncio as redis
from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from learntrack.auth.dependencies import get_auth_service
from learntrack.auth.router import router as auth_router
from learntrack.auth.service import AuthService
from learntrack.config import Settings, get_settings
from learntrack.core.database.async_cassandra import (
    init_async_cassandra,
    shutdown_async_cassandra,
)
from learntrack.core.errors import register_exception_handlers
from learntrack.core.logging import configure_structlog, get_logger
from learntrack.core.middleware import RequestContextMiddleware
from learntrack.core.redis import init_redis, shutdown_redis
from learntrack.courses.dependencies import get_course_service
from learntrack.courses.router import router as courses_router
from learntrack.courses.service import CourseService
from learntrack.health import router as health_router
from learntrack.modules.dependencies import get_module_service
from learntrack.modules.router import router as modules_router
from learntrack.modules.service import ModuleService
from learntrack.progress.dependencies import get_progress_service, get_sync_service
from learntrack.progress.router import router as progress_router
from learntrack.progress.service import ProgressService
from learntrack.progress.sync import ProgressSyncService
from learntrack.quizzes.dependencies import get_quiz_service
from learntrack.quizzes.router import admin_router as quizzes_admin_router
from learntrack.quizzes.router import instructor_router as quizzes_instructor_router
from learntrack.quizzes.router import router as quizzes_router
from learntrack.quizzes.service import QuizService


settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)

CASSANDRA_ERRORS = (
    DriverException,
    RequestExecutionException,
    NoHostAvailable,
    OSError,
)

ROUTERS = (
    health_router,
    auth_router,
    courses_router,
    modules_router,
    progress_router,
    quizzes_router,
    quizzes_admin_router,
    quizzes_instructor_router,
)


@dataclass
class Services:
    auth: AuthService
    courses: CourseService
    modules: ModuleService
    progress: ProgressService
    sync: ProgressSyncService
    quizzes: QuizService


def build_services(
    session: Any, keyspace: str, cache: redis.Redis | None = None
) -> Services:
    """Wire the domain services over one Cassandra session.

    Construction order follows the dependencies between them: progress
    needs the catalog, quizzes need progress to complete a course.
    """
    auth = AuthService(session=session, keyspace=keyspace)
    courses = CourseService(session=session, keyspace=keyspace, auth_service=auth)
    modules = ModuleService(session=session, keyspace=keyspace, course_service=courses)
    progress = ProgressService(
        session=session,
        keyspace=keyspace,
        course_service=courses,
        module_service=modules,
        auth_service=auth,
        redis=cache,
    )
    quizzes = QuizService(
        session=session,
        keyspace=keyspace,
        course_service=courses,
        progress_service=progress,
    )
    return Services(
        auth=auth,
        courses=courses,
        modules=modules,
        progress=progress,
        sync=ProgressSyncService(progress),
        quizzes=quizzes,
    )


def bind_services(services: Services) -> None:
    """Expose the services to the routers' ``Depends`` providers."""
    get_auth_service.bind_instance(services.auth)
    get_course_service.bind_instance(services.courses)
    get_module_service.bind_instance(services.modules)
    get_progress_service.bind_instance(services.progress)
    get_sync_service.bind_instance(services.sync)
    get_quiz_service.bind_instance(services.quizzes)


async def _connect_cache() -> redis.Redis | None:
    try:
        return await init_redis()
    except (redis.RedisError, OSError) as e:
        logger.warning("redis_unavailable", error=str(e), analytics_cache=False)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: Settings = app.state.settings
    logger.info(
        "starting_application",
        app_name=config.app_name,
        version=config.app_version,
        environment=config.environment,
    )
    app.state.database_ready = False

    cache = await _connect_cache()
    try:
        session = await init_async_cassandra()
    except CASSANDRA_ERRORS as e:
        # Health endpoints keep answering; data routes fail with 500 until restart
        logger.error("database_unavailable", error=str(e))
    else:
        bind_services(build_services(session, config.cassandra_keyspace, cache))
        app.state.database_ready = True
        logger.info("services_ready", cache_enabled=cache is not None)

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or get_settings()
    docs = config.docs_enabled

    # debug stays off so Starlette never renders tracebacks into responses
    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Learning progress tracker API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )
    app.state.settings = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
        max_age=config.cors_max_age,
    )
    # Added last so it is outermost and also sees CORS preflights
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=config.log_requests,
        exclude_paths=config.log_exclude_paths,
    )
    register_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": f"{config.app_name} API",
            "version": config.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
