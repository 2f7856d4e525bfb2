"""
Announcement API: public banner list and admin management
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from square_puzzles import config
from square_puzzles.clock import Clock, as_utc
from square_puzzles.database import get_db
from square_puzzles.dependencies import get_clock, require_admin
from square_puzzles.game_logic import AnnouncementBoard, paginate, pagination_info
from square_puzzles.models import Announcement
from square_puzzles.schemas import (
    AnnouncementDetail,
    AnnouncementListResponse,
    AnnouncementPageResponse,
    AnnouncementResponse,
    MessageResponse,
)

router = APIRouter(prefix="/api/announcement", tags=["announcements"])


def announcement_detail(announcement: Announcement) -> AnnouncementDetail:
    return AnnouncementDetail(
        id=announcement.id,
        title=announcement.title,
        message=announcement.message,
        type=announcement.type,
        is_active=announcement.is_active,
        start_date=as_utc(announcement.start_date) if announcement.start_date else None,
        expires_at=as_utc(announcement.expires_at) if announcement.expires_at else None,
        created_by=announcement.created_by,
        created_at=as_utc(announcement.created_at) if announcement.created_at else None,
    )


async def _require_announcement(board: AnnouncementBoard, announcement_id: int) -> Announcement:
    announcement = await board.get(announcement_id)
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")
    return announcement


@router.get("", response_model=AnnouncementListResponse)
async def list_active_announcements(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Announcements currently shown to players"""
    announcements = await AnnouncementBoard(db, clock).list_active()
    return AnnouncementListResponse(
        count=len(announcements),
        data=[announcement_detail(item) for item in announcements],
    )


@router.get("/admin", response_model=AnnouncementPageResponse)
async def list_all_announcements(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Every announcement, newest first"""
    page, limit = paginate(page, limit, config.ADMIN_PAGE_SIZE)
    announcements, total = await AnnouncementBoard(db, clock).list_all(page, limit)
    return AnnouncementPageResponse(
        count=len(announcements),
        data=[announcement_detail(item) for item in announcements],
        pagination=pagination_info(page, limit, total),
    )


@router.post("", response_model=AnnouncementResponse, status_code=201)
async def create_announcement(
    payload: dict,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    announcement = await AnnouncementBoard(db, clock).create(payload, admin_id)
    return AnnouncementResponse(data=announcement_detail(announcement))


@router.put("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: int,
    payload: dict,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    board = AnnouncementBoard(db, clock)
    announcement = await _require_announcement(board, announcement_id)
    announcement = await board.update(announcement, payload)
    return AnnouncementResponse(data=announcement_detail(announcement))


@router.delete("/{announcement_id}", response_model=MessageResponse)
async def delete_announcement(
    announcement_id: int,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    board = AnnouncementBoard(db, clock)
    announcement = await _require_announcement(board, announcement_id)
    await board.delete(announcement)
    return MessageResponse(message="Announcement deleted successfully")
