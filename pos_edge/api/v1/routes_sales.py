# pos_edge/api/v1/routes_sales.py
import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pos_edge.api.v1.deps import get_print_service
from pos_edge.core.config import settings
from pos_edge.db.base import get_db
from pos_edge.domain.checkout.schemas import CommittedSale, ProposedSale
from pos_edge.domain.checkout.service import commit_sale, get_sale
from pos_edge.domain.receipt.builder import build_receipt
from pos_edge.domain.receipt.schemas import ReceiptDocument
from pos_edge.printing.service import PrintService


router = APIRouter(prefix="/api/v1/sales", tags=["sales"])


async def _load_sale(db: AsyncSession, sale_id: int) -> CommittedSale:
    sale = await get_sale(db, sale_id)
    if sale is None:
        raise HTTPException(status_code=404, detail=f"Sale {sale_id} not found")
    return CommittedSale.model_validate(sale)


@router.post("", response_model=CommittedSale, status_code=status.HTTP_201_CREATED)
async def create_sale_endpoint(
    payload: ProposedSale,
    db: AsyncSession = Depends(get_db),
):
    try:
        sale = await asyncio.wait_for(
            commit_sale(db, payload), timeout=settings.COMMIT_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        # the transaction may or may not have committed
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Checkout timed out, outcome unknown. Retry with the same request_id.",
        )
    return CommittedSale.model_validate(sale)


@router.get("/{sale_id}", response_model=CommittedSale)
async def get_sale_endpoint(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await _load_sale(db, sale_id)


@router.get("/{sale_id}/receipt", response_model=ReceiptDocument)
async def get_receipt_endpoint(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    printer: PrintService = Depends(get_print_service),
):
    sale = await _load_sale(db, sale_id)
    return build_receipt(sale, printer.context)


@router.get("/{sale_id}/receipt/escpos")
async def get_receipt_bytes_endpoint(
    sale_id: int,
    open_drawer: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    printer: PrintService = Depends(get_print_service),
):
    # raw ESC/POS for clients that print locally (e.g. Bluetooth bridges)
    sale = await _load_sale(db, sale_id)
    return Response(content=printer.render(sale, open_drawer), media_type="application/octet-stream")


@router.post("/{sale_id}/receipt/print")
async def print_receipt_endpoint(
    sale_id: int,
    open_drawer: bool = Query(True),
    printer_name: str | None = Query(None, alias="printer"),
    db: AsyncSession = Depends(get_db),
    printer: PrintService = Depends(get_print_service),
):
    sale = await _load_sale(db, sale_id)
    used = await printer.print_receipt(sale, open_drawer=open_drawer, printer_id=printer_name)
    return {"success": True, "message": "Receipt printed successfully", "printer": used}
