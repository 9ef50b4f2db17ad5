import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from coursepay.config import settings
from coursepay.database import Base, engine
from coursepay.errors import AuthFailure
from coursepay.gateway import MercadoPagoGateway
from coursepay.routes import router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

settings.warn_on_placeholders()

app = FastAPI(title="Course Payment Service")

# Built once per process and shared by every request
app.state.gateway = MercadoPagoGateway.from_settings(settings)

app.include_router(router)

Base.metadata.create_all(bind=engine)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data.", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(AuthFailure)
async def auth_failure_handler(request: Request, exc: AuthFailure):
    return JSONResponse(status_code=401, content={"message": exc.message})
