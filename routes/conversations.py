import asyncio

from fastapi import APIRouter, HTTPException, Query, status
from typing import List, Optional

from dependencies.auth import CurrentUser
from dependencies.messaging import ConversationWatcherDep, MessageServiceDep, UnreadServiceDep
from models.conversation_model import Conversation, ConversationCreate
from models.exceptions import ConversationServiceError
from models.message_model import Message, MessageCreate
from routes.errors import to_http_exception
from logger.logger import logger

router = APIRouter()

@router.post("/", response_model=Conversation)
async def create_conversation(
    body: ConversationCreate,
    current_user: CurrentUser,
    message_service: MessageServiceDep,
):
    """Open a conversation with the creator of a post, or return the existing one"""
    try:
        return await message_service.create_conversation(body.post_id, current_user.id)
    except ConversationServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create conversation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create conversation: {str(e)}"
        )

@router.get("/", response_model=List[Conversation])
async def list_conversations(current_user: CurrentUser, message_service: MessageServiceDep):
    """Get all conversations for the current user"""
    try:
        return await message_service.list_conversations(current_user.id)
    except ConversationServiceError as e:
        raise to_http_exception(e)

@router.get("/{conversation_id}/messages", response_model=List[Message])
async def get_messages(
    conversation_id: str,
    current_user: CurrentUser,
    message_service: MessageServiceDep,
    limit: Optional[int] = Query(None, ge=1, description="Most recent messages to return"),
):
    try:
        return await message_service.get_messages(conversation_id, current_user.id, limit)
    except ConversationServiceError as e:
        raise to_http_exception(e)

@router.post("/{conversation_id}/messages", response_model=Message)
async def send_message(
    conversation_id: str,
    body: MessageCreate,
    current_user: CurrentUser,
    message_service: MessageServiceDep,
):
    """Send a new text message"""
    try:
        return await message_service.send_message(conversation_id, current_user.id, body.text)
    except ConversationServiceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to send message: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send message: {str(e)}"
        )

@router.delete("/{conversation_id}/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    conversation_id: str,
    message_id: str,
    current_user: CurrentUser,
    message_service: MessageServiceDep,
):
    try:
        await message_service.delete_message(conversation_id, message_id, current_user.id)
    except ConversationServiceError as e:
        raise to_http_exception(e)

@router.post("/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: str,
    current_user: CurrentUser,
    unread_service: UnreadServiceDep,
):
    """Reset the caller's unread counter; a conversation deleted meanwhile is not an error"""
    updated = await unread_service.mark_conversation_read(conversation_id, current_user.id)
    return {"status": "success", "updated": updated}

@router.post("/{conversation_id}/messages/{message_id}/read")
async def mark_message_read(
    conversation_id: str,
    message_id: str,
    current_user: CurrentUser,
    unread_service: UnreadServiceDep,
):
    updated = await unread_service.mark_message_read(conversation_id, message_id, current_user.id)
    return {"status": "success", "updated": updated}

@router.post("/{conversation_id}/read-all")
async def mark_all_read(
    conversation_id: str,
    current_user: CurrentUser,
    unread_service: UnreadServiceDep,
):
    marked = await unread_service.mark_all_unread_read(conversation_id, current_user.id)
    await unread_service.mark_conversation_read(conversation_id, current_user.id)
    return {"status": "success", "marked": marked}

@router.get("/{conversation_id}/gone")
async def wait_until_gone(
    conversation_id: str,
    current_user: CurrentUser,
    watcher: ConversationWatcherDep,
    timeout: float = Query(30, gt=0, le=120, description="Seconds to wait"),
):
    """Long-poll: returns once the conversation is deleted, or when the timeout expires"""
    gone = asyncio.Event()
    subscription = watcher.on_conversation_gone(conversation_id, lambda _: gone.set())
    try:
        await asyncio.wait_for(gone.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        pass
    finally:
        subscription.cancel()
    return {"conversation_id": conversation_id, "gone": gone.is_set()}

@router.post("/{conversation_id}/refresh-post", response_model=Conversation)
async def refresh_post_snapshot(
    conversation_id: str,
    current_user: CurrentUser,
    message_service: MessageServiceDep,
):
    """Re-copy title, type and status of the post onto the conversation"""
    try:
        return await message_service.refresh_post_snapshot(conversation_id, current_user.id)
    except ConversationServiceError as e:
        raise to_http_exception(e)
