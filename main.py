import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import APP_LOG_PATH, APP_NAME, APP_VERSION, ENVIRONMENT, LOG_LEVEL
from core.db import create_tables
from core.logging import configure_logging, request_id_var
from routers.conversations.api import router as conversations_router
from routers.dependencies import install_error_handlers
from routers.groups.api import router as groups_router
from routers.media.api import router as media_router
from routers.messages.api import router as messages_router
from routers.users.api import router as users_router

log_level = configure_logging(
    environment=ENVIRONMENT, log_level=LOG_LEVEL, app_log_path=APP_LOG_PATH
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=APP_NAME,
    description="Backend API for direct and group chat: conversations, messages, reactions and read status",
    version=APP_VERSION,
    swagger_ui_parameters={
        "docExpansion": "none",
        "displayRequestDuration": True,
        "filter": True,
    },
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=APP_NAME,
        version=APP_VERSION,
        description="""
        Chat Engine API

        ## Authentication
        Call POST /session with a username to obtain an identifier, then send it with
        every request as `Authorization: Bearer <identifier>` or `X-User-ID: <identifier>`.
        """,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "bearerAuth": {"type": "http", "scheme": "bearer"}
    }
    openapi_schema["security"] = [{"bearerAuth": []}]
    app.openapi_schema = openapi_schema
    return openapi_schema


app.openapi = custom_openapi


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Short ID for readability
        request_id = str(uuid.uuid4())[:8]
        request_id_var.set(request_id)
        request.state.request_id = request_id

        start_time = time.time()

        user_id = request.headers.get("X-User-ID")
        auth_header = request.headers.get("authorization") or request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            user_id = auth_header.split(" ", 1)[1].strip()

        query_str = f"?{request.url.query}" if request.query_params else ""
        logger.info(
            f"REQUEST | id={request_id} | method={request.method} | path={request.url.path}{query_str} | "
            f"user_id={user_id or 'anonymous'} | ip={request.client.host if request.client else 'unknown'}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"ERROR | id={request_id} | method={request.method} | path={request.url.path} | "
                f"error={type(e).__name__}: {str(e)} | time={process_time:.3f}s | user_id={user_id or 'anonymous'}",
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            f"RESPONSE | id={request_id} | method={request.method} | path={request.url.path} | "
            f"status={response.status_code} | time={process_time:.3f}s | user_id={user_id or 'anonymous'}"
        )
        response.headers["X-Request-ID"] = request_id
        return response


# Add request logging middleware (before CORS so it logs all requests)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "Authorization", "Content-Type", "X-User-ID"],
)

install_error_handlers(app)

app.include_router(users_router)          # Session, usernames, user photos
app.include_router(conversations_router)  # Conversation listing and creation
app.include_router(messages_router)       # Messages, forwarding, status, reactions/comments
app.include_router(groups_router)         # Group membership, name and photo
app.include_router(media_router)          # Stored image blobs


@app.on_event("startup")
async def startup_event():
    create_tables()
    logger.info(f"{APP_NAME} started successfully")

    from fastapi.routing import APIRoute

    logger.info("=== Registered Routes ===")
    for route in app.routes:
        if isinstance(route, APIRoute):
            methods = ",".join(route.methods)
            logger.info(f"{methods:8} {route.path}")
    logger.info("=== End of Routes ===")


@app.get("/")
async def read_root():
    """
    Root endpoint to check if the server is running.
    Returns basic API information.
    """
    return {
        "status": "online",
        "message": f"Welcome to {APP_NAME}!",
        "version": APP_VERSION,
        "environment": ENVIRONMENT,
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.
    """
    return {"status": "healthy"}
