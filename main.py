from dotenv import load_dotenv
load_dotenv()
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpers.config import LOG_LEVEL
from helpers.errors import AppointmentError, InternalFailure
from helpers.tortoise_config import lifespan
from controllers.appointment_controller import appointment_router


logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_body(code: int, message: str, error: str = None, data=None) -> dict:
    body = {"status": "error", "code": code, "message": message}
    if error:
        body["error"] = error
    if data is not None:
        body["data"] = data
    return body


@app.exception_handler(AppointmentError)
async def appointment_error_handler(request: Request, exc: AppointmentError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.message, exc.kind))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body(400, "Invalid request", "ValidationError", errors))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    failure = InternalFailure()
    return JSONResponse(status_code=500, content=error_body(500, failure.message, failure.kind))


app.include_router(appointment_router, prefix='/api', tags=['Appointments'])


@app.get('/')
def greetings():
    return {
        "Message": "Appointment service is running"
    }
