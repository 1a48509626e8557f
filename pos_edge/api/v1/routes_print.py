# pos_edge/api/v1/routes_print.py
from fastapi import APIRouter, Depends, Query

from pos_edge.api.v1.deps import get_print_service
from pos_edge.printing.service import PrintService


router = APIRouter(prefix="/api/v1/print", tags=["print"])


@router.post("/drawer")
async def open_drawer_endpoint(
    printer_name: str | None = Query(None, alias="printer"),
    printer: PrintService = Depends(get_print_service),
):
    used = await printer.open_cash_drawer(printer_name)
    return {"success": True, "message": "Cash drawer opened", "printer": used}


@router.post("/test")
async def test_print_endpoint(
    printer_name: str | None = Query(None, alias="printer"),
    printer: PrintService = Depends(get_print_service),
):
    used = await printer.test_print(printer_name)
    return {"success": True, "message": f"Test receipt printed successfully to {used}", "printer": used}
