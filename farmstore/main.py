"""
FastAPI application for the storefront order API.
"""
import time
import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from farmstore import __version__
from farmstore.config import Config
from farmstore.exceptions import (
    OrderIdCollisionError,
    OrderNotFoundError,
    RedisConnectionError,
    StatusTransitionError,
    ValidationError
)
from farmstore.middleware import RequestLoggingMiddleware, hash_identifier
from farmstore.models import OrderCreateRequest, OrderCreatedResponse, StatusUpdateRequest
from farmstore.order_service import OrderService

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

service_router = APIRouter()
orders_router = APIRouter(prefix=f"{API_PREFIX}/orders")


def get_order_service(request: Request) -> OrderService:
    """Order service bound to the application (created on first use)"""
    if request.app.state.order_service is None:
        request.app.state.order_service = OrderService()
    return request.app.state.order_service


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message}
    )


# Health check endpoint for load balancers
@service_router.get("/health")
def health_check(request: Request):
    """
    Health check endpoint.
    Always returns HTTP 200 if the application is running.
    Checks Redis connectivity but does not fail if Redis is unavailable.
    """
    redis_status = "healthy"
    redis_latency_ms = None

    try:
        service = get_order_service(request)
        ping_start = time.time()
        ping_result = service.redis.ping()
        redis_latency_ms = round((time.time() - ping_start) * 1000, 2)

        if not ping_result:
            redis_status = "unhealthy"
    except RedisConnectionError as e:
        logger.warning(f"Health check could not reach Redis: {e}")
        redis_status = "unhealthy"

    return {
        "status": "healthy",
        "service": "order-api",
        "redis": {
            "status": redis_status,
            "latency_ms": redis_latency_ms
        },
        "timestamp": time.time()
    }


@service_router.get("/")
def root():
    """API index"""
    return {
        "success": True,
        "message": "Green Africa Farm API",
        "version": __version__,
        "endpoints": {
            "orders": f"{API_PREFIX}/orders",
            "health": "/health"
        }
    }


# Order endpoints
@orders_router.post("", status_code=201)
def create_order(
    request: OrderCreateRequest,
    service: OrderService = Depends(get_order_service)
):
    """
    Place an order.
    The order is stored as pending with a generated GAF-NNNN reference.
    """
    order = service.create_order(
        customer=request.customer,
        items=request.items,
        total=request.total
    )
    data = OrderCreatedResponse(orderId=order.order_id, _id=order.id)
    return JSONResponse(
        status_code=201,
        content={"success": True, "data": data.model_dump(by_alias=True)}
    )


@orders_router.get("")
def list_orders(service: OrderService = Depends(get_order_service)):
    """Get all orders, newest first"""
    orders = service.list_orders()
    return {"success": True, "data": [order.to_document() for order in orders]}


@orders_router.put("/{record_id}/status")
def update_order_status(
    record_id: str,
    request: StatusUpdateRequest,
    service: OrderService = Depends(get_order_service)
):
    """Change an order's status"""
    order = service.set_status(record_id, request.status)
    return {"success": True, "data": order.to_document()}


# Error handlers
async def validation_error_handler(request: Request, exc: ValidationError):
    return error_response(400, exc.message)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return error_response(400, "; ".join(problems) or "Invalid request")


async def order_not_found_handler(request: Request, exc: OrderNotFoundError):
    logger.info(f"Order not found: {hash_identifier(exc.order_id)}")
    return error_response(404, "Order not found")


async def conflict_handler(request: Request, exc: Exception):
    return error_response(409, str(exc))


async def redis_error_handler(request: Request, exc: RedisConnectionError):
    logger.error(f"Redis unavailable: {exc}")
    return error_response(503, "Service unavailable")


# Generic exception handler for unhandled errors
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )
    return error_response(500, str(exc) or "Internal server error")


def create_app(order_service: Optional[OrderService] = None) -> FastAPI:
    """Build the application, optionally around an existing order service"""
    app = FastAPI(
        title="Green Africa Farm API",
        description="Orders for the Green Africa Farm storefront",
        version=__version__
    )
    app.state.order_service = order_service

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(service_router)
    app.include_router(orders_router)

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(OrderNotFoundError, order_not_found_handler)
    app.add_exception_handler(StatusTransitionError, conflict_handler)
    app.add_exception_handler(OrderIdCollisionError, conflict_handler)
    app.add_exception_handler(RedisConnectionError, redis_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=Config.APP_PORT)
