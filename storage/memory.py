"""
In-memory persistence gateway keyed by identifier.
"""

from typing import Dict, List, Optional, Type

from models.records import ChannelRecord, VideoRecord, TranscriptRecord, SummaryRecord
from storage.gateway import PersistenceGateway, Resource, Where, R


class InMemoryResource(Resource[R]):
    """Resource held in a dict; records are copied on the way in and out."""

    def __init__(self, record_model: Type[R], key_field: str):
        self.record_model = record_model
        self.key_field = key_field
        self.rows: Dict[str, R] = {}

    async def get(self, key: str) -> Optional[R]:
        row = self.rows.get(key)
        return row.model_copy(deep=True) if row else None

    async def upsert(self, record: R, conflict_key: Optional[str] = None) -> R:
        conflict_key = conflict_key or self.key_field
        conflict_value = getattr(record, conflict_key)

        for key, row in list(self.rows.items()):
            if getattr(row, conflict_key) == conflict_value:
                del self.rows[key]

        self.rows[getattr(record, self.key_field)] = record.model_copy(deep=True)
        return record

    async def list_where(
        self,
        *conditions: Where,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[R]:
        rows = [
            row for row in self.rows.values()
            if all(condition.matches(row) for condition in conditions)
        ]
        if order_by:
            rows.sort(key=lambda row: getattr(row, order_by), reverse=descending)
        return [row.model_copy(deep=True) for row in rows]


class InMemoryGateway(PersistenceGateway):
    """Gateway used by tests and dry runs."""

    def __init__(self):
        super().__init__(
            channels=InMemoryResource(ChannelRecord, "id"),
            videos=InMemoryResource(VideoRecord, "id"),
            transcripts=InMemoryResource(TranscriptRecord, "video_id"),
            summaries=InMemoryResource(SummaryRecord, "video_id"),
        )
