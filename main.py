import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.database import engine
from models.base import Base

from routers.auth import router as auth_router
from routers.user import router as user_router
from routers.discover import router as discover_router
from routers.matches import router as matches_router
from routers.messages import router as messages_router
from routers.conversations import router as conversations_router
from routers.admin import router as admin_router
from routers.health import router as health_router

app = FastAPI(
    title="Matchmaking Backend",
    version="0.1.0",
    description="Swipe, match and message API",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} completed in {process_time:.2f} ms"
    )
    return response


# Every error body is {"error": "<message>"}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


app.include_router(auth_router)
app.include_router(user_router)
app.include_router(discover_router)
app.include_router(matches_router)
app.include_router(messages_router)
app.include_router(conversations_router)
app.include_router(admin_router)
app.include_router(health_router)


@app.on_event("startup")
async def on_startup():
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/")
async def root():
    return {"message": "Matchmaking Backend"}


@app.on_event("shutdown")
async def shutdown():
    # Close every pooled connection
    await engine.dispose()
