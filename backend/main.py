from fastapi import FastAPI, Request
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from core.config import settings
from core.exceptions import (
    CircularDependencyError,
    DuplicateEdgeError,
    ImmutableMovementError,
    InsufficientComponentStockError,
    InsufficientStockError,
    InvalidQuantityError,
    InventoryError,
    NoBomError,
    NotFoundError,
    NotManufacturedError,
    SameLocationError,
    SelfReferenceError,
)
from core.logging_config import configure_logging
from db.database import create_db_and_tables, utcnow
from routers.bom import router as bom_router
from routers.inventory import router as inventory_router
from contextlib import asynccontextmanager

configure_logging(settings.log_level, settings.log_format)

# Checked in order; subclasses before their bases.
ERROR_STATUS = (
    (NotFoundError, 404),
    (InvalidQuantityError, 400),
    (SameLocationError, 400),
    (SelfReferenceError, 400),
    (InsufficientStockError, 409),
    (InsufficientComponentStockError, 409),
    (DuplicateEdgeError, 409),
    (CircularDependencyError, 409),
    (NotManufacturedError, 409),
    (NoBomError, 409),
    (ImmutableMovementError, 409),
)


def status_for(exc: InventoryError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Stock Ledger API",
    description="Event-sourced inventory ledger with bill-of-materials production",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


@app.get("/health", tags=["health"])
async def healthcheck():
    return {"status": "ok", "timestamp": utcnow().isoformat()}


# Stock movements, levels and history
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
# Bill of materials graph
app.include_router(bom_router, prefix="/bill-of-materials", tags=["bill-of-materials"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
