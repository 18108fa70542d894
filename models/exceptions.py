class ConversationServiceError(Exception):
    """Base class for typed failures surfaced to callers"""
    code = "SERVICE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ValidationError(ConversationServiceError):
    """Malformed or untrusted photo URL, missing required evidence, bad input"""
    code = "VALIDATION_ERROR"

class NotFound(ConversationServiceError):
    """Message, conversation or post missing"""
    code = "NOT_FOUND"

class InvalidState(ConversationServiceError):
    """Operation attempted against a request not in an eligible status"""
    code = "INVALID_STATE"

class PermissionDenied(ConversationServiceError):
    """Store refused access, or the caller may not act on the document"""
    code = "PERMISSION_DENIED"

class AlreadyGone(ConversationServiceError):
    """Target disappeared while being read; callers on read paths treat this as success"""
    code = "ALREADY_GONE"
