from datetime import datetime, timezone


def get_current_utc_time() -> datetime:
    """Timezone-aware UTC now, used for every stored timestamp"""
    return datetime.now(timezone.utc)
