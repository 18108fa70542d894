import functools

from pymongo.errors import OperationFailure

from models.exceptions import PermissionDenied

# Unauthorized / AuthenticationFailed
UNAUTHORIZED_CODES = {13, 18}

def translate_store_errors(func):
    """Surface authorization failures from Mongo as PermissionDenied"""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except OperationFailure as e:
            if e.code in UNAUTHORIZED_CODES:
                raise PermissionDenied(f"{func.__name__}: {e}") from e
            raise
    return wrapper
