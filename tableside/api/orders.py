"""Order API endpoints: submission, lookup and status changes."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from tableside.api.errors import http_error
from tableside.core.dependencies import get_cart_store, get_order_repository, get_submission_service
from tableside.core.errors import InvalidTransitionError
from tableside.services.cart.aggregator import Cart
from tableside.services.cart.store import KeyValueStore
from tableside.services.ordering.models import OrderRecord, OrderStatus, Priority, StatusChangeResult
from tableside.services.ordering.state_machine import next_status
from tableside.services.ordering.submission import OrderSubmissionService
from tableside.services.persistence.orders import OrderRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class SubmitOrderRequest(BaseModel):
    special_instructions: Optional[str] = None
    customer_name: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    expected_version: Optional[int] = None


class AdvanceRequest(BaseModel):
    expected_version: Optional[int] = None


class PriorityUpdateRequest(BaseModel):
    priority: Priority
    expected_version: Optional[int] = None


class BulkStatusRequest(BaseModel):
    order_ids: List[int] = Field(min_length=1)
    status: OrderStatus


@router.post("/api/tables/{table_id}/orders", response_model=OrderRecord, status_code=201)
async def submit_order(
    table_id: int,
    request: Request,
    body: Optional[SubmitOrderRequest] = None,
    service: OrderSubmissionService = Depends(get_submission_service),
    store: KeyValueStore = Depends(get_cart_store),
):
    """Submit the table's cart as a new pending order."""
    body = body or SubmitOrderRequest()
    logger.info(
        f"[ORDERS] Submit received - table: {table_id}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    try:
        cart = Cart.load(table_id, store)
        return await service.submit(
            cart,
            body.special_instructions,
            table_id,
            customer_name=body.customer_name,
        )
    except Exception as e:
        raise http_error("ORDERS", e) from e


@router.get("/api/orders/{order_id}", response_model=OrderRecord)
async def get_order(order_id: int, orders: OrderRepository = Depends(get_order_repository)):
    try:
        return await orders.get_order(order_id)
    except Exception as e:
        raise http_error("ORDERS", e) from e


@router.get("/api/restaurants/{restaurant_id}/orders", response_model=List[OrderRecord])
async def list_orders(
    restaurant_id: int,
    status: Optional[List[OrderStatus]] = Query(None),
    active_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
    orders: OrderRepository = Depends(get_order_repository),
):
    """List a restaurant's orders, newest first."""
    logger.debug(
        f"[ORDERS] Listing restaurant {restaurant_id} - status: {status}, "
        f"active_only: {active_only}, limit: {limit}"
    )
    try:
        return await orders.list_orders(
            restaurant_id, statuses=status, active_only=active_only, limit=limit
        )
    except Exception as e:
        raise http_error("ORDERS", e) from e


@router.patch("/api/orders/{order_id}/status", response_model=OrderRecord)
async def update_order_status(
    order_id: int,
    body: StatusUpdateRequest,
    orders: OrderRepository = Depends(get_order_repository),
):
    """Move an order forward. Backward moves and stale versions return 409."""
    try:
        return await orders.update_status(order_id, body.status, body.expected_version)
    except Exception as e:
        raise http_error("ORDERS", e) from e


@router.post("/api/orders/{order_id}/advance", response_model=OrderRecord)
async def advance_order(
    order_id: int,
    body: Optional[AdvanceRequest] = None,
    orders: OrderRepository = Depends(get_order_repository),
):
    """Move an order one step forward, as the board's action button does."""
    expected_version = body.expected_version if body else None
    try:
        current = await orders.get_order(order_id)
        target = next_status(current.status)
        if target is None:
            raise InvalidTransitionError(str(current.status), str(current.status))
        return await orders.update_status(order_id, target, expected_version)
    except Exception as e:
        raise http_error("ORDERS", e) from e


@router.patch("/api/orders/{order_id}/priority", response_model=OrderRecord)
async def update_order_priority(
    order_id: int,
    body: PriorityUpdateRequest,
    orders: OrderRepository = Depends(get_order_repository),
):
    try:
        return await orders.update_priority(order_id, body.priority, body.expected_version)
    except Exception as e:
        raise http_error("ORDERS", e) from e


@router.delete("/api/orders/{order_id}", status_code=204)
async def delete_order(order_id: int, orders: OrderRepository = Depends(get_order_repository)):
    try:
        await orders.delete_order(order_id)
    except Exception as e:
        raise http_error("ORDERS", e) from e
    return Response(status_code=204)


@router.post(
    "/api/restaurants/{restaurant_id}/orders/bulk-status",
    response_model=List[StatusChangeResult],
)
async def bulk_update_order_status(
    restaurant_id: int,
    body: BulkStatusRequest,
    orders: OrderRepository = Depends(get_order_repository),
):
    """Apply one status to many orders; each succeeds or fails on its own."""
    try:
        results = await orders.bulk_update_status(restaurant_id, body.order_ids, body.status)
    except Exception as e:
        raise http_error("ORDERS", e) from e
    succeeded = sum(1 for result in results if result.success)
    logger.info(
        f"[ORDERS] Bulk status {body.status.value} for restaurant {restaurant_id}: "
        f"{succeeded}/{len(results)} updated"
    )
    return results
