from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from pos_edge.api.v1.routes_print import router as print_router
from pos_edge.api.v1.routes_sales import router as sales_router
from pos_edge.core.config import settings
from pos_edge.core.errors import PosError
from pos_edge.core.exception_handlers import (
    general_exception_handler,
    pos_error_handler,
    validation_exception_handler,
)
from pos_edge.core.logger import setup_logging
from pos_edge.db.base import init_models

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_CREATE_ALL:
        await init_models()
    logger.info("POS edge started")
    yield


app = FastAPI(title="POS Edge", version="0.1.0", lifespan=lifespan)

app.add_exception_handler(PosError, pos_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(sales_router)
app.include_router(print_router)

@app.get("/health")
async def health():
    return {"status": "ok"}
