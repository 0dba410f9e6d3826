import copy
from dataclasses import dataclass, field

from quizdraft.crud.store import DocumentStore, Record, check_record, deep_merge


@dataclass
class MemoryDocumentStore(DocumentStore):
    _docs: dict[str, Record] = field(default_factory=dict)
    writes: int = 0

    async def get(self, doc_id: str) -> Record | None:
        record = self._docs.get(doc_id)
        return copy.deepcopy(record) if record is not None else None

    async def set(self, doc_id: str, record: Record, merge: bool = True) -> None:
        check_record(record)
        existing = self._docs.get(doc_id)
        if merge and existing is not None:
            record = deep_merge(existing, record)
        self._docs[doc_id] = copy.deepcopy(record)
        self.writes += 1

    async def query(self, owner_id: str, is_published: bool | None = None) -> list[Record]:
        return [
            copy.deepcopy(r) for r in self._docs.values()
            if r.get("owner_id") == owner_id
            and (is_published is None or bool(r.get("is_published")) == is_published)
        ]
