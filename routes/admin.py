from fastapi import APIRouter
from typing import List

from dependencies.auth import AdminUser
from dependencies.messaging import CleanupServiceDep, IntegrityServiceDep, MessageServiceDep
from models.integrity_model import (
    AdminMessageStats,
    CleanupResult,
    ComprehensiveHealthCheckResult,
    ConversationIntegrityResult,
    GhostConversation,
    HealthCheckResult,
    OrphanedMessage,
    PeriodicCleanupResult,
)

router = APIRouter()

@router.get("/integrity/ghosts", response_model=List[GhostConversation])
async def detect_ghost_conversations(admin: AdminUser, integrity: IntegrityServiceDep):
    return await integrity.detect_ghost_conversations()

@router.get("/integrity/orphans", response_model=List[OrphanedMessage])
async def detect_orphaned_messages(admin: AdminUser, integrity: IntegrityServiceDep):
    return await integrity.detect_orphaned_messages()

@router.get("/integrity/health", response_model=HealthCheckResult)
async def quick_health_check(admin: AdminUser, integrity: IntegrityServiceDep):
    """Sampled check; ghost_count is an estimate"""
    return await integrity.quick_health_check()

@router.get("/integrity/health/full", response_model=ComprehensiveHealthCheckResult)
async def comprehensive_health_check(admin: AdminUser, integrity: IntegrityServiceDep):
    return await integrity.comprehensive_health_check()

@router.get("/integrity/report", response_model=ConversationIntegrityResult)
async def integrity_report(admin: AdminUser, integrity: IntegrityServiceDep):
    return await integrity.validate_conversation_integrity()

@router.post("/integrity/cleanup", response_model=PeriodicCleanupResult)
async def run_cleanup(admin: AdminUser, cleanup: CleanupServiceDep):
    """Detect and delete ghost conversations and orphaned messages now"""
    return await cleanup.run_periodic_cleanup()

@router.delete("/conversations/{conversation_id}", response_model=CleanupResult)
async def delete_conversation(conversation_id: str, admin: AdminUser, cleanup: CleanupServiceDep):
    return await cleanup.cleanup_conversation(conversation_id)

@router.get("/messages/stats", response_model=AdminMessageStats)
async def message_stats(admin: AdminUser, message_service: MessageServiceDep):
    return await message_service.admin_message_stats()
