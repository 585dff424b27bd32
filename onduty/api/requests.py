"""REST routes for requests."""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

from onduty.database import get_db
from onduty.models.request import Request, RequestStatus
from onduty.schemas import ActorPayload, RequestCreate, RequestRecord, RequestUpdate
from onduty.services.request_service import RequestService


router = APIRouter(prefix="/requests", tags=["requests"])


def serialize(request: Request) -> dict:
    return RequestRecord.model_validate(request).to_wire()


@router.get("")
async def list_requests(
    manager_id: Optional[str] = Query(None, alias="managerId"),
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    viewer_id: Optional[str] = Query(None, alias="viewerId"),
    db: Session = Depends(get_db)
):
    """
    List requests, newest first.

    Args:
        manager_id: Only requests assigned to this manager
        status_filter: Only requests in this status
        viewer_id: Restrict to what this user may see
        db: Database session
    """
    service = RequestService(db)
    requests = service.list_requests(
        manager_id=manager_id,
        status=status_filter,
        viewer_id=viewer_id
    )
    return JSONResponse(content=[serialize(r) for r in requests])


@router.get("/{request_id}")
async def get_request(request_id: str, db: Session = Depends(get_db)):
    service = RequestService(db)
    return JSONResponse(content=serialize(service.get_request(request_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_request(payload: RequestCreate, db: Session = Depends(get_db)):
    """
    Create a pending request.

    Client-side ids, status and handler fields in the body are ignored: new
    requests always start pending with a server-assigned id.
    """
    service = RequestService(db)
    request = service.create_request(
        user_id=payload.user_id,
        user_name=payload.user_name,
        date=payload.date,
        shift=payload.shift,
        reason=payload.reason,
        instructor_id=payload.instructor_id,
        instructor_name=payload.instructor_name,
        manager_id=payload.manager_id,
        manager_name=payload.manager_name,
        image_url=payload.image_url,
        created_at=payload.created_at
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=serialize(request))


@router.put("/{request_id}")
async def update_request(
    request_id: str,
    payload: RequestUpdate,
    db: Session = Depends(get_db)
):
    """Patch a request. Last write wins; there is no version check."""
    service = RequestService(db)
    request = service.update_request(request_id, payload.model_dump(exclude_unset=True))
    return JSONResponse(content=serialize(request))


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    actor_id: Optional[str] = Query(None, alias="actorId"),
    db: Session = Depends(get_db)
):
    service = RequestService(db)
    service.delete_request(request_id, acting_user_id=actor_id)
    return JSONResponse(content={"message": "Deleted"})


@router.post("/{request_id}/accept")
async def accept_request(
    request_id: str,
    payload: ActorPayload,
    db: Session = Depends(get_db)
):
    """Accept a pending request as ``payload.actorId``."""
    service = RequestService(db)
    return JSONResponse(content=serialize(service.accept_request(request_id, payload.actor_id)))


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: str,
    payload: ActorPayload,
    db: Session = Depends(get_db)
):
    """Reject a pending request as ``payload.actorId``."""
    service = RequestService(db)
    return JSONResponse(content=serialize(service.reject_request(request_id, payload.actor_id)))


@router.post("/{request_id}/revoke")
async def revoke_request(
    request_id: str,
    payload: ActorPayload,
    db: Session = Depends(get_db)
):
    """Withdraw a pending request; only its requester may do this."""
    service = RequestService(db)
    return JSONResponse(content=serialize(service.revoke_request(request_id, payload.actor_id)))
