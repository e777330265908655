from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from config import ALLOWED_ORIGINS, LOG_DIR, LOG_LEVEL
from database import create_indexes, close_mongo_connection
from routers import admin, auth, courses, quiz, student, teacher
from utils.exceptions import LMSException
from utils.logger import configure_logging, set_request_id, clear_request_id

logger = configure_logging(LOG_LEVEL, LOG_DIR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting SmartEdu API...")
    await create_indexes()
    yield
    # Shutdown
    await close_mongo_connection()

app = FastAPI(title="SmartEdu API", version="1.0.0", lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    try:
        logger.info("request start method=%s path=%s", request.method, request.url.path)
        response: Response = await call_next(request)
        logger.info("request end status=%s method=%s path=%s",
                    response.status_code, request.method, request.url.path)
        response.headers["x-request-id"] = rid
        return response
    except Exception:
        logger.exception("request error method=%s path=%s", request.method, request.url.path)
        raise
    finally:
        clear_request_id()


@app.exception_handler(LMSException)
async def lms_exception_handler(request: Request, exc: LMSException) -> JSONResponse:
    logger.warning("domain error status=%s method=%s path=%s message=%s",
                   exc.status_code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("http error status=%s method=%s path=%s detail=%s",
                   exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        "{}: {}".format(".".join(str(part) for part in error.get("loc", ()) if part != "body"), error.get("msg"))
        for error in exc.errors()
    ]
    logger.warning("validation error method=%s path=%s errors=%s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "error": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Never leak internal exception details to clients.
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


@app.get("/")
async def health():
    return {"ok": True, "message": "SmartEdu backend is up"}


app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(quiz.router)
app.include_router(student.router)
app.include_router(teacher.router)
app.include_router(admin.router)
