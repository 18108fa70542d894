from pydantic import BaseModel, Field
from typing import List

class GhostConversation(BaseModel):
    """A conversation whose post is missing or unreachable"""
    conversation_id: str
    post_id: str
    reason: str

class OrphanedMessage(BaseModel):
    """A message whose parent conversation no longer exists"""
    conversation_id: str
    message_id: str
    reason: str

class CleanupResult(BaseModel):
    """
    Tally of a bulk deletion; partial failure is reported here, never raised.

    success counts targets that are gone afterwards, already_gone the subset
    that had disappeared before we got to them.
    """
    success: int = 0
    failed: int = 0
    already_gone: int = 0
    errors: List[str] = Field(default_factory=list)

    def merge(self, other: "CleanupResult") -> "CleanupResult":
        return CleanupResult(
            success=self.success + other.success,
            failed=self.failed + other.failed,
            already_gone=self.already_gone + other.already_gone,
            errors=self.errors + other.errors,
        )

class PeriodicCleanupResult(BaseModel):
    timestamp: str
    ghosts_detected: int = 0
    ghosts_cleaned: int = 0
    orphans_detected: int = 0
    orphans_cleaned: int = 0
    errors: List[str] = Field(default_factory=list)
    duration: int = 0  # milliseconds

class HealthCheckResult(BaseModel):
    """
    Health summary.

    For the quick check ghost_count is an estimate extrapolated from a sample,
    not an exact count.
    """
    healthy: bool
    total_conversations: int = 0
    ghost_count: int = 0
    issues: List[str] = Field(default_factory=list)

class ComprehensiveHealthCheckResult(HealthCheckResult):
    orphaned_messages: int = 0

class ConversationIntegrityResult(BaseModel):
    total_conversations: int = 0
    valid_conversations: int = 0
    ghost_conversations: int = 0
    orphaned_messages: int = 0
    details: List[str] = Field(default_factory=list)

class AdminMessageStats(BaseModel):
    total_conversations: int = 0
    total_unread_messages: int = 0
    pending_handover_requests: int = 0
    pending_claim_requests: int = 0
