from .confession import Confession, ConfessionStatus
from .push_outbox import PushOutbox

__all__ = [
    "Confession",
    "ConfessionStatus",
    "PushOutbox",
]
