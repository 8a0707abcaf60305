import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import close_mongo_connection, connect_to_mongo
from routers import posts_router, users_router
from settings import Settings, get_settings
from util.cert import TokenService
from util.errors import BlogError
from util.image_storage import ObjectUploadGateway, build_storage_backend
from util.posts import MongoPostRepository
from util.response import error, ok
from util.users import MongoUserRepository

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = None,
    *,
    users=None,
    posts=None,
    storage_backend=None,
) -> FastAPI:
    """
    Build the application. Repositories and the storage backend may be
    supplied directly; otherwise MongoDB is connected on startup and the
    backend is chosen by ``settings.storage``.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        connected = False
        if app.state.users is None or app.state.posts is None:
            database = await connect_to_mongo(settings)
            connected = True
            if app.state.users is None:
                app.state.users = MongoUserRepository(database.users)
            if app.state.posts is None:
                app.state.posts = MongoPostRepository(database.posts)
        await app.state.users.ensure_indexes()
        await app.state.posts.ensure_indexes()
        yield
        if connected:
            await close_mongo_connection()

    app = FastAPI(title="Blog Backend", version=__version__, lifespan=lifespan)

    app.state.settings = settings
    app.state.users = users
    app.state.posts = posts
    app.state.tokens = TokenService(
        settings.secret, expires=timedelta(days=settings.token_expire_days)
    )
    app.state.storage = ObjectUploadGateway(
        storage_backend or build_storage_backend(settings),
        staging_dir=settings.upload_folder,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册路由
    app.include_router(users_router.router, prefix=settings.api_prefix, tags=["users"])
    app.include_router(posts_router.router, prefix=settings.api_prefix, tags=["posts"])

    @app.exception_handler(BlogError)
    async def blog_exception_handler(request: Request, exc: BlogError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error(exc.status_code, exc.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error(exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error(400, "Validation error", _jsonable_errors(exc)),
        )

    # Custom exception handler for internal server errors
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error(500, "An internal server error occurred"),
        )

    @app.get(settings.api_prefix + "/")
    async def root():
        return ok("Welcome to the API!")

    @app.get(settings.api_prefix + "/version")
    async def get_version():
        return ok(__version__)

    return app


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(app=create_app(settings), host="0.0.0.0", port=4000)
