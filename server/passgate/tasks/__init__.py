from .cleanup import purge_expired_records
from .notifications import deliver_step_up_code

__all__ = [
    "purge_expired_records",
    "deliver_step_up_code",
]
