from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, selectinload

from auth import get_current_participant
from database import get_db
from event_service import get_event_or_404
from models import Artwork, ArtworkComment, ArtworkStatus, ParticipantAccount, Profile
from schemas import ArtworkCreate, ArtworkResponse, ArtworkStatusUpdate, CommentCreate, CommentResponse
from security import require_admin
from utils import log_admin_action

router = APIRouter()


def _comments(db: Session, artwork_id: int) -> List[CommentResponse]:
    rows = (
        db.query(ArtworkComment)
        .options(selectinload(ArtworkComment.participant))
        .filter(ArtworkComment.artwork_id == artwork_id)
        .order_by(ArtworkComment.created_at.asc(), ArtworkComment.id.asc())
        .all()
    )
    return [
        CommentResponse(id=row.id, content=row.content, author=row.participant.full_name, created_at=row.created_at)
        for row in rows
    ]


def _artwork_response(artwork: Artwork, comments: Optional[List[CommentResponse]] = None) -> ArtworkResponse:
    return ArtworkResponse(
        id=artwork.id,
        title=artwork.title,
        description=artwork.description,
        image_url=artwork.image_url,
        status=artwork.status,
        event_id=artwork.event_id,
        event_name=artwork.event.name if artwork.event else None,
        participant_id=artwork.participant_id,
        artist=artwork.participant.full_name if artwork.participant else "",
        created_at=artwork.created_at,
        comments=comments or [],
    )


def _artwork_query(db: Session):
    return db.query(Artwork).options(selectinload(Artwork.participant), selectinload(Artwork.event))


def _get_artwork_or_404(db: Session, artwork_id: int) -> Artwork:
    artwork = _artwork_query(db).filter(Artwork.id == artwork_id).first()
    if not artwork:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artwork not found")
    return artwork


@router.get("/gallery", response_model=List[ArtworkResponse])
def list_gallery(event_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    query = _artwork_query(db).filter(Artwork.status == ArtworkStatus.APPROVED)
    if event_id is not None:
        query = query.filter(Artwork.event_id == event_id)
    return [_artwork_response(row) for row in query.order_by(Artwork.created_at.desc(), Artwork.id.desc()).all()]


@router.get("/gallery/portfolio/{participant_id}", response_model=List[ArtworkResponse])
def participant_portfolio(participant_id: int, db: Session = Depends(get_db)):
    if not db.query(ParticipantAccount).filter(ParticipantAccount.id == participant_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")
    rows = (
        _artwork_query(db)
        .filter(Artwork.participant_id == participant_id, Artwork.status == ArtworkStatus.APPROVED)
        .order_by(Artwork.created_at.desc(), Artwork.id.desc())
        .all()
    )
    return [_artwork_response(row) for row in rows]


@router.get("/gallery/mine", response_model=List[ArtworkResponse])
def my_artworks(account: ParticipantAccount = Depends(get_current_participant), db: Session = Depends(get_db)):
    rows = _artwork_query(db).filter(Artwork.participant_id == account.id).order_by(Artwork.id.desc()).all()
    return [_artwork_response(row) for row in rows]


@router.get("/gallery/{artwork_id}", response_model=ArtworkResponse)
def artwork_detail(artwork_id: int, db: Session = Depends(get_db)):
    artwork = _get_artwork_or_404(db, artwork_id)
    if artwork.status != ArtworkStatus.APPROVED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artwork not found")
    return _artwork_response(artwork, _comments(db, artwork.id))


@router.post("/gallery", response_model=ArtworkResponse)
def submit_artwork(
    payload: ArtworkCreate,
    account: ParticipantAccount = Depends(get_current_participant),
    db: Session = Depends(get_db),
):
    if payload.event_id is not None:
        get_event_or_404(db, payload.event_id)
    artwork = Artwork(
        participant_id=account.id,
        event_id=payload.event_id,
        title=payload.title.strip(),
        description=payload.description,
        image_url=payload.image_url,
        status=ArtworkStatus.PENDING,
    )
    db.add(artwork)
    db.commit()
    return _artwork_response(_get_artwork_or_404(db, artwork.id))


@router.post("/gallery/{artwork_id}/comments", response_model=CommentResponse)
def add_comment(
    artwork_id: int,
    payload: CommentCreate,
    account: ParticipantAccount = Depends(get_current_participant),
    db: Session = Depends(get_db),
):
    artwork = _get_artwork_or_404(db, artwork_id)
    if artwork.status != ArtworkStatus.APPROVED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artwork not found")
    comment = ArtworkComment(artwork_id=artwork.id, participant_id=account.id, content=payload.content.strip())
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return CommentResponse(id=comment.id, content=comment.content, author=account.full_name, created_at=comment.created_at)


@router.get("/admin/gallery", response_model=List[ArtworkResponse])
def admin_list_artworks(
    status_filter: Optional[ArtworkStatus] = Query(None, alias="status"),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = _artwork_query(db)
    if status_filter:
        query = query.filter(Artwork.status == status_filter)
    return [_artwork_response(row) for row in query.order_by(Artwork.id.desc()).all()]


@router.put("/admin/gallery/{artwork_id}/status", response_model=ArtworkResponse)
def admin_update_artwork_status(
    artwork_id: int,
    payload: ArtworkStatusUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    artwork = _get_artwork_or_404(db, artwork_id)
    artwork.status = payload.status
    log_admin_action(db, admin, "update_artwork_status", request.method, request.url.path, {"artwork_id": artwork.id, "status": payload.status.value}, commit=False)
    db.commit()
    return _artwork_response(_get_artwork_or_404(db, artwork.id))
