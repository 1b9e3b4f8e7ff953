"""FastAPI application for catalog/inventory synchronization."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import Engine

from halora.db.session import create_engine_from_env
from halora.logic import catalog as catalog_logic
from halora.logic import inventory as inventory_logic
from halora.logic.drift import DEFAULT_FIELDS, compare_inventory_with_products
from halora.logic.history import SYNC, SyncRun, last_run, record_run
from halora.logic.reconcile import sync_products_to_inventory
from halora.store import DocumentStore, StoreError, create_store_from_env
from halora.utils.dates import utc_now_iso

logger = logging.getLogger(__name__)

MSG_SYNC_OK = "Đã đồng bộ hóa {count} sản phẩm thành công!"
MSG_SYNC_FAILED = "Có lỗi xảy ra khi đồng bộ dữ liệu!"
MSG_NO_DIFFERENCES = "Không có sự khác biệt về số lượng tồn kho!"
MSG_DIFFERENCES = "Tìm thấy {count} sự khác biệt về tồn kho."
MSG_INVALID_ACTION = "Action không hợp lệ!"
MSG_REQUEST_FAILED = "Có lỗi xảy ra khi xử lý yêu cầu!"
MSG_STATUS_FAILED = "Có lỗi xảy ra khi kiểm tra trạng thái!"
MSG_NOT_FOUND = "Không tìm thấy sản phẩm trong kho!"


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.store = create_store_from_env()
    app.state.engine = create_engine_from_env()
    try:
        yield
    finally:
        await app.state.store.close()
        app.state.engine.dispose()


app = FastAPI(title="Halora Inventory Sync API", lifespan=lifespan)


class SyncRequest(BaseModel):
    action: str
    fields: list[str] | None = None


class InventoryPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    variant_name: str | None = Field(default=None, alias="variantName")
    stock_qty: float | None = Field(default=None, alias="stockQty", ge=0)
    import_price: float | None = Field(default=None, alias="importPrice", ge=0)
    price: float | None = Field(default=None, ge=0)
    supplier: str | None = None
    brand_id: str | None = Field(default=None, alias="brandId")

    def to_store(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def _error_response(message: str, exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": message, "error": str(exc)},
        status_code=status_code,
    )


@app.post("/api/sync-products")
async def sync_products(
    payload: SyncRequest,
    store: DocumentStore = Depends(get_store),
    engine: Engine = Depends(get_engine),
) -> JSONResponse:
    if payload.action == "sync":
        result = await sync_products_to_inventory(store)
        record_run(engine, SyncRun.from_sync(result))
        return JSONResponse(
            {
                "success": result.success,
                "message": MSG_SYNC_OK.format(count=result.synced_count) if result.success else MSG_SYNC_FAILED,
                "data": {
                    "syncedCount": result.synced_count,
                    "errors": [error.to_dict() for error in result.errors],
                },
                **({"error": result.error} if result.error else {}),
            }
        )

    if payload.action == "compare":
        try:
            report = await compare_inventory_with_products(store, payload.fields or DEFAULT_FIELDS)
        except ValueError as exc:
            return _error_response(MSG_REQUEST_FAILED, exc, status_code=400)
        except StoreError as exc:
            logger.error("Compare failed: %s", exc)
            return _error_response(MSG_REQUEST_FAILED, exc)
        record_run(engine, SyncRun.from_report(report))
        message = (
            MSG_NO_DIFFERENCES
            if report.total_differences == 0
            else MSG_DIFFERENCES.format(count=report.total_differences)
        )
        return JSONResponse({"success": True, "message": message, "data": report.to_dict()})

    return JSONResponse({"success": False, "message": MSG_INVALID_ACTION}, status_code=400)


@app.get("/api/sync-products")
async def sync_status(
    store: DocumentStore = Depends(get_store),
    engine: Engine = Depends(get_engine),
) -> JSONResponse:
    try:
        report = await compare_inventory_with_products(store)
    except StoreError as exc:
        logger.error("Status check failed: %s", exc)
        return _error_response(MSG_STATUS_FAILED, exc)
    previous = last_run(engine, SYNC)
    data = report.to_dict()
    data["lastChecked"] = utc_now_iso()
    data["lastSynced"] = previous.ts_iso if previous else None
    return JSONResponse({"success": True, "data": data})


@app.get("/api/inventory")
async def list_inventory(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    try:
        items = await inventory_logic.fetch_inventory(store)
    except StoreError as exc:
        return _error_response(MSG_REQUEST_FAILED, exc)
    return JSONResponse({"success": True, "data": [item.to_dict() for item in items]})


@app.get("/api/inventory/{product_id}/{variant_id}")
async def read_inventory_item(
    product_id: str, variant_id: str, store: DocumentStore = Depends(get_store)
) -> JSONResponse:
    try:
        item = await inventory_logic.get_inventory_item(store, product_id, variant_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if item is None:
        raise HTTPException(status_code=404, detail=MSG_NOT_FOUND)
    return JSONResponse({"success": True, "data": item.to_record()})


@app.put("/api/inventory/{product_id}/{variant_id}")
async def put_inventory_item(
    product_id: str,
    variant_id: str,
    payload: InventoryPayload,
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    try:
        record = await inventory_logic.add_inventory(store, product_id, variant_id, payload.to_store())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        return _error_response(MSG_REQUEST_FAILED, exc)
    return JSONResponse({"success": True, "data": record})


@app.patch("/api/inventory/{product_id}/{variant_id}")
async def patch_inventory_item(
    product_id: str,
    variant_id: str,
    payload: InventoryPayload,
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    try:
        changes = await inventory_logic.update_inventory(store, product_id, variant_id, payload.to_store())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        return _error_response(MSG_REQUEST_FAILED, exc)
    return JSONResponse({"success": True, "data": changes})


@app.get("/api/products/low-stock")
async def low_stock(
    threshold: int = Query(int(os.environ.get("LOW_STOCK_THRESHOLD", catalog_logic.LOW_STOCK_THRESHOLD)), ge=1),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    try:
        items = await catalog_logic.find_low_stock(store, threshold)
    except StoreError as exc:
        return _error_response(MSG_REQUEST_FAILED, exc)
    data = [{"product": product.to_dict(), "variant": variant.to_dict()} for product, variant in items]
    return JSONResponse({"success": True, "data": data})


@app.get("/api/products/search")
async def search(q: str = Query(..., min_length=1), store: DocumentStore = Depends(get_store)) -> JSONResponse:
    try:
        products = await catalog_logic.search_products(store, q)
    except StoreError as exc:
        return _error_response(MSG_REQUEST_FAILED, exc)
    return JSONResponse({"success": True, "data": [product.to_dict() for product in products]})
