"""Generic CRUD endpoints for every configured collection."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from chromabase.dependencies import get_gateway
from chromabase.models.envelope import SuccessResponse, success

router = APIRouter(prefix="/api", tags=["records"])


@router.get("/{collection}", response_model=SuccessResponse)
async def list_records(collection: str, gateway=Depends(get_gateway)) -> dict:
    return success(await gateway.list(collection))


@router.get("/{collection}/{doc_id}", response_model=SuccessResponse)
async def get_record(collection: str, doc_id: str, gateway=Depends(get_gateway)) -> dict:
    return success(await gateway.get(collection, doc_id))


@router.post("/{collection}", response_model=SuccessResponse)
async def create_record(
    collection: str,
    payload: dict[str, Any] = Body(...),
    gateway=Depends(get_gateway),
) -> dict:
    doc_id = await gateway.create(collection, payload)
    return success({"id": doc_id})


@router.put("/{collection}/{doc_id}", response_model=SuccessResponse)
async def update_record(
    collection: str,
    doc_id: str,
    payload: dict[str, Any] = Body(...),
    gateway=Depends(get_gateway),
) -> dict:
    await gateway.update(collection, doc_id, payload)
    return success({"id": doc_id})


@router.delete("/{collection}/{doc_id}", response_model=SuccessResponse)
async def delete_record(collection: str, doc_id: str, gateway=Depends(get_gateway)) -> dict:
    await gateway.delete(collection, doc_id)
    return success({"deleted": True})
