from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette import status

from ..core.errors import error_payload
from ..crud.hardware import apply_batch, checkin, checkout, get_status
from ..db.session import get_db
from ..deps.auth import require_user
from ..schemas.hardware import (
    BatchRequest,
    BatchResponse,
    HardwareResponse,
    HardwareSetOut,
    HardwareStatusResponse,
    QuantityRequest,
)

router = APIRouter(prefix="/api/hardware", tags=["hardware"])


@router.get("", response_model=HardwareStatusResponse)
def api_status(db: Session = Depends(get_db)):
    return {"hardware": get_status(db)}


@router.post("/batch", response_model=BatchResponse, dependencies=[Depends(require_user)])
def api_batch(payload: BatchRequest, db: Session = Depends(get_db)):
    applied, errors = apply_batch(db, payload.action, payload.quantities)
    body = BatchResponse(
        hardware={name: _to_out(row) for name, row in applied.items()},
        errors={name: error_payload(exc) for name, exc in errors.items()},
    )
    if errors:
        return JSONResponse(body.model_dump(by_alias=True), status_code=status.HTTP_207_MULTI_STATUS)
    return body


@router.post("/{name}/checkout", response_model=HardwareResponse, dependencies=[Depends(require_user)])
def api_checkout(name: str, payload: QuantityRequest, db: Session = Depends(get_db)):
    row = checkout(db, name, payload.quantity)
    return {"hardware": _to_out(row)}


@router.post("/{name}/checkin", response_model=HardwareResponse, dependencies=[Depends(require_user)])
def api_checkin(name: str, payload: QuantityRequest, db: Session = Depends(get_db)):
    row = checkin(db, name, payload.quantity)
    return {"hardware": _to_out(row)}


def _to_out(row) -> HardwareSetOut:
    return HardwareSetOut(name=row.name, capacity=row.capacity, checked_out=row.checked_out)
