from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from typing import List

from dependencies.auth import CurrentUser
from dependencies.messaging import EvidenceServiceDep, RequestServiceDep
from models.enums import RequestKind
from models.exceptions import ConversationServiceError
from models.message_model import (
    ConfirmResult,
    EvidenceUpload,
    Message,
    RequestCreate,
    RequestResponse,
)
from routes.errors import to_http_exception
from logger.logger import logger

router = APIRouter()

@router.post("/evidence/{kind}", response_model=List[str])
async def upload_evidence(
    kind: RequestKind,
    current_user: CurrentUser,
    evidence_service: EvidenceServiceDep,
    files: List[UploadFile] = File(...),
    id_photo: bool = Query(False, description="Upload an ID photo instead of item/evidence photos"),
):
    """Upload photos for a request and return their URLs"""
    try:
        uploads = [
            EvidenceUpload(
                filename=f.filename or "upload",
                content_type=f.content_type or "",
                data=await f.read(),
            )
            for f in files
        ]
        return await evidence_service.upload_evidence(kind, uploads, id_photo=id_photo)
    except ConversationServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Evidence upload by {current_user.id} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload photos: {str(e)}"
        )

@router.post("/{kind}/{conversation_id}", response_model=Message)
async def send_request(
    kind: RequestKind,
    conversation_id: str,
    body: RequestCreate,
    current_user: CurrentUser,
    request_service: RequestServiceDep,
):
    """Send a handover or claim request into a conversation"""
    try:
        return await request_service.send_request(
            kind, conversation_id, current_user.id, body, is_admin=current_user.is_admin
        )
    except ConversationServiceError as e:
        raise to_http_exception(e)

@router.post("/{kind}/{conversation_id}/{message_id}/respond", response_model=Message)
async def respond_to_request(
    kind: RequestKind,
    conversation_id: str,
    message_id: str,
    body: RequestResponse,
    current_user: CurrentUser,
    request_service: RequestServiceDep,
):
    try:
        return await request_service.respond(kind, conversation_id, message_id, current_user.id, body)
    except ConversationServiceError as e:
        raise to_http_exception(e)

@router.post("/{kind}/{conversation_id}/{message_id}/confirm", response_model=ConfirmResult)
async def confirm_request(
    kind: RequestKind,
    conversation_id: str,
    message_id: str,
    current_user: CurrentUser,
    request_service: RequestServiceDep,
):
    """Confirm the counter photo; resolves the post and removes its conversations"""
    try:
        return await request_service.confirm(kind, conversation_id, message_id, current_user.id)
    except ConversationServiceError as e:
        raise to_http_exception(e)

@router.post("/{kind}/{conversation_id}/{message_id}/reject-after-confirmation", response_model=Message)
async def reject_after_confirmation(
    kind: RequestKind,
    conversation_id: str,
    message_id: str,
    current_user: CurrentUser,
    request_service: RequestServiceDep,
):
    try:
        return await request_service.reject_after_confirmation(kind, conversation_id, message_id, current_user.id)
    except ConversationServiceError as e:
        raise to_http_exception(e)
