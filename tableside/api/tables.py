"""Table management API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tableside.api.errors import http_error
from tableside.core.dependencies import get_table_repository
from tableside.services.ordering.models import TableStatus
from tableside.services.persistence.restaurants import TableRecord, TableRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class TableStatusRequest(BaseModel):
    status: TableStatus


class BulkTableStatusRequest(BaseModel):
    table_ids: List[int] = Field(min_length=1)
    status: TableStatus


@router.get("/api/restaurants/{restaurant_id}/tables", response_model=List[TableRecord])
async def list_tables(restaurant_id: int, tables: TableRepository = Depends(get_table_repository)):
    try:
        return await tables.list_tables(restaurant_id)
    except Exception as e:
        raise http_error("TABLES", e) from e


@router.patch("/api/tables/{table_id}/status", response_model=TableRecord)
async def update_table_status(
    table_id: int,
    body: TableStatusRequest,
    tables: TableRepository = Depends(get_table_repository),
):
    try:
        return await tables.update_status(table_id, body.status)
    except Exception as e:
        raise http_error("TABLES", e) from e


@router.post("/api/restaurants/{restaurant_id}/tables/bulk-status", response_model=List[TableRecord])
async def bulk_update_table_status(
    restaurant_id: int,
    body: BulkTableStatusRequest,
    tables: TableRepository = Depends(get_table_repository),
):
    """Set the same status on several tables, ignoring ids of other restaurants."""
    try:
        return await tables.bulk_update_status(restaurant_id, body.table_ids, body.status)
    except Exception as e:
        raise http_error("TABLES", e) from e
