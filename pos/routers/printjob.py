import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pos.db import get_db
from pos.errors import NotFoundError
from pos.services import orders as order_svc
from pos.services.receipt import error_receipt, render_receipt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/print", tags=["print"])


class PrintLine(BaseModel):
    type: int = 0
    content: str
    bold: int = 0
    align: int = 0
    format: int = 0


class PrintJob(BaseModel):
    printData: list[PrintLine]


@router.get("/receipt/{order_id}", response_model=PrintJob)
def receipt(order_id: str, db: Session = Depends(get_db)):
    """
    Print payload polled by the thermal printer app.

    The printer prints whatever it receives, so bad ids come back as a
    printable error line instead of an HTTP error.
    """
    try:
        oid = str(UUID(order_id))
    except ValueError:
        return PrintJob(printData=error_receipt("ID TIDAK VALID"))

    try:
        o, items = order_svc.get_order(db, oid)
    except NotFoundError:
        return PrintJob(printData=error_receipt("ORDER TIDAK DITEMUKAN"))

    logger.info("receipt rendered for %s (%s)", o.order_number, o.status.value)
    return PrintJob(printData=render_receipt(o, items))
