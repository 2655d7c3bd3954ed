from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Canonical task record as held by the source of truth.

    Date values are aware datetimes (absolute instants carrying their own
    offset or zone), independent of any client display timezone.

    Fields:
    - id: Unique integer identifier
    - title: Short title
    - description: Optional detailed description
    - priority: Priority level as text
    - status: Status as text
    - created_at: Creation instant (always present)
    - updated_at: Last update instant (always present)
    - due_date: Optional instant the task is expected to be done
    - resolved_at: Instant the task was done, None until resolved
    """

    id: int
    title: str
    description: Optional[str]
    priority: Optional[str]
    status: Optional[str]
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime]
    resolved_at: Optional[datetime]
