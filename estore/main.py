# estore/main.py
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from . import accounts, catalog, orders
from .config import Settings, get_settings
from .core import (
    LoginIn,
    OrderIn,
    OrderStatusIn,
    ProductIn,
    ProductUpdateIn,
    RowId,
    SignupIn,
    _make_product_changes,
    _make_product_dict,
)
from .database import create_db_engine, init_db, ping
from .errors import ForbiddenError, StoreError
from .logging_config import configure_logging
from .models import OrderRow, Product, User
from .security import create_token, get_current_user, get_engine, get_settings_dep, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter()


# ---------------------------
# Service
# ---------------------------
@router.get("/")
def root():
    return {"message": "estore API running"}


@router.get("/health")
def health(engine: Engine = Depends(get_engine)):
    if ping(engine):
        return {"backend": "ok", "database": "ok"}
    return JSONResponse(status_code=503, content={"backend": "ok", "database": "unavailable"})


# ---------------------------
# Auth endpoints
# ---------------------------
@router.post("/signup", status_code=201)
def signup(payload: SignupIn, engine: Engine = Depends(get_engine)):
    user = accounts.signup(engine, payload.name, payload.email, payload.password)
    return {"message": "User registered successfully", "user": user}


@router.post("/login")
def login(
    payload: LoginIn,
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings_dep),
):
    user = accounts.authenticate(engine, payload.email, payload.password)
    return {
        "message": "Login successful",
        "user": user,
        "access_token": create_token(user, settings),
        "token_type": "bearer",
    }


@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)):
    return user


# ---------------------------
# Product endpoints
# ---------------------------
@router.get("/products", response_model=List[Product])
def list_products(
    search: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    category: Optional[str] = None,
    engine: Engine = Depends(get_engine),
):
    return catalog.list_products(engine, search, min_price, max_price, category)


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: RowId, engine: Engine = Depends(get_engine)):
    return catalog.get_product(engine, product_id)


@router.post("/products", status_code=201, response_model=Product)
def create_product(
    payload: ProductIn,
    engine: Engine = Depends(get_engine),
    admin: User = Depends(require_admin),
):
    return catalog.create_product(engine, _make_product_dict(payload))


@router.put("/products/{product_id}")
def update_product(
    product_id: RowId,
    payload: ProductUpdateIn,
    engine: Engine = Depends(get_engine),
    admin: User = Depends(require_admin),
):
    product = catalog.update_product(engine, product_id, _make_product_changes(payload))
    return {"message": "Product updated", "product": product}


@router.delete("/products/{product_id}")
def delete_product(
    product_id: RowId,
    engine: Engine = Depends(get_engine),
    admin: User = Depends(require_admin),
):
    catalog.delete_product(engine, product_id)
    return {"message": "Product deleted", "product_id": product_id}


# ---------------------------
# Orders
# ---------------------------
@router.post("/orders", status_code=201)
def create_order(
    payload: OrderIn,
    engine: Engine = Depends(get_engine),
    user: User = Depends(get_current_user),
):
    user_id = payload.user_id if payload.user_id is not None else user.id
    if user_id != user.id and not user.is_admin:
        raise ForbiddenError("Cannot place orders for another user")
    summary = orders.create_order(
        engine, user_id, payload.product_id, payload.quantity, payload.delivery_address
    )
    return {"message": "Order placed", **summary.model_dump(mode="json")}


@router.get("/orders", response_model=List[OrderRow], response_model_exclude_none=True)
def list_orders(engine: Engine = Depends(get_engine), user: User = Depends(get_current_user)):
    return orders.list_orders(engine, user.id, user.role)


@router.put("/orders/{order_id}/status")
def update_order_status(
    order_id: RowId,
    payload: OrderStatusIn,
    engine: Engine = Depends(get_engine),
    admin: User = Depends(require_admin),
):
    status = orders.update_order_status(engine, order_id, payload.status)
    return {"message": f"Order status updated to {status}", "order_id": order_id, "status": status}


@router.delete("/orders/{order_id}")
def cancel_order(
    order_id: RowId,
    engine: Engine = Depends(get_engine),
    user: User = Depends(get_current_user),
):
    cancelled = orders.cancel_order(engine, order_id, user.id, user.role)
    return {
        "message": "Order cancelled successfully",
        "order_id": cancelled.id,
        "restored_quantity": cancelled.quantity,
    }


# ---------------------------
# Error mapping
# ---------------------------
async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


# ---------------------------
# App factory
# ---------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    yield
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(title="estore", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine or create_db_engine(settings.database_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)
    return app


app = create_app()
