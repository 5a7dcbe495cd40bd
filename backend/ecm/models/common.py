"""Pieces shared by every model: the polymorphic subject tag and the UTC clock."""
import enum
from datetime import datetime, timezone


class EntityType(str, enum.Enum):
    ECR = "ECR"
    ECO = "ECO"
    ECN = "ECN"


def utcnow() -> datetime:
    """Timestamps are set app-side in UTC so ordering never depends on the server clock."""
    return datetime.now(timezone.utc)
