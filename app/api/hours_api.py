from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.errors import (
    MSG_HOURS_UNAVAILABLE,
    STATUS_UNAUTHORIZED,
    AuthError,
    NetworkError,
    SaveFailedError,
    upstream_error_to_http,
)
from app.db import get_db
from app.schemas import HoursChangeRequest, HoursResponse, LoginRequest
from app.services.admin_hours import HoursChangeSet, editor_rows, save_changes
from app.services.hours_service import HoursBoard, describe, evaluate, load_schedule

router = APIRouter()


def get_board(request: Request) -> HoursBoard:
    return request.app.state.board


def require_admin(board: HoursBoard = Depends(get_board),
                  x_admin_token: Optional[str] = Header(None)) -> str:
    if not x_admin_token:
        raise HTTPException(status_code=STATUS_UNAUTHORIZED, detail="Missing admin token")
    try:
        verified = board.source.verify_token(x_admin_token)
    except NetworkError as e:
        raise upstream_error_to_http(e)
    if not verified:
        raise HTTPException(status_code=STATUS_UNAUTHORIZED, detail="Invalid admin token")
    return x_admin_token


@router.get("/hours", response_model=HoursResponse)
def get_hours(board: HoursBoard = Depends(get_board)):
    cards = board.snapshot()
    if cards is None:
        return HoursResponse(message=MSG_HOURS_UNAVAILABLE)
    return HoursResponse(units=cards)


@router.get("/hours/status")
def get_status(board: HoursBoard = Depends(get_board)):
    if board.schedule is None:
        return {}
    return {unit: status.value for unit, status in evaluate(board.schedule, board.clock.now()).items()}


@router.get("/hours/schedule")
def get_schedule(board: HoursBoard = Depends(get_board)):
    if board.schedule is None:
        return {}
    return {
        unit: [asdict(line) for line in lines]
        for unit, lines in describe(board.schedule).items()
    }


@router.post("/hours/refresh")
def trigger_refresh(background_tasks: BackgroundTasks, board: HoursBoard = Depends(get_board)):
    background_tasks.add_task(board.refresh)
    return {"status": "Running"}


@router.post("/admin/login")
def admin_login(body: LoginRequest, board: HoursBoard = Depends(get_board)):
    try:
        token = board.source.login(body.username, body.password)
    except AuthError as e:
        raise HTTPException(status_code=STATUS_UNAUTHORIZED, detail=str(e))
    except NetworkError as e:
        raise upstream_error_to_http(e)
    return {"success": True, "token": token, "username": body.username.strip()}


@router.get("/admin/hours")
def get_editor_rows(board: HoursBoard = Depends(get_board),
                    db: Session = Depends(get_db),
                    _token: str = Depends(require_admin)):
    schedule = board.schedule
    if schedule is None:
        # Board never loaded; edit from the last cached copy
        schedule = load_schedule(db) or {}
    return {unit: editor_rows(unit_schedule) for unit, unit_schedule in schedule.items()}


@router.post("/admin/hours")
def save_hours(body: HoursChangeRequest,
               board: HoursBoard = Depends(get_board),
               admin_token: str = Depends(require_admin)):
    changes = HoursChangeSet()
    try:
        for change in body.changes:
            changes.track(change.day, change.open, change.close)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        sent = save_changes(changes, board.source, admin_token)
    except (NetworkError, SaveFailedError) as e:
        raise upstream_error_to_http(e)
    if not sent:
        return {"success": True, "message": "No changes to save"}

    # Admin writes go to the backend; re-read so the board reflects them
    board.refresh()
    return {"success": True, "message": "All changes saved successfully"}
