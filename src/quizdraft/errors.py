"""Exception hierarchy for persistence, quota, and ownership failures"""


class QuizdraftError(Exception):
    """Base class for all quizdraft errors."""


class QuotaExceededError(QuizdraftError):
    """A tier limit blocked the requested transition.

    `code` is a stable string the caller can match on to prompt an upgrade.
    """
    code = "QUOTA_EXCEEDED"

    def __init__(self, limit: int, count: int):
        self.limit = limit
        self.count = count
        super().__init__(f"{self.code}: {count} existing, limit {limit}")


class DraftLimitReached(QuotaExceededError):
    code = "DRAFT_LIMIT_REACHED"


class PublishLimitReached(QuotaExceededError):
    code = "PUBLISH_LIMIT_REACHED"


class PersistenceError(QuizdraftError):
    """The document store or blob store failed to complete a write or read."""


class InvalidRecordError(PersistenceError):
    """A record contains the undefined sentinel or a value the store cannot encode."""


class QuizNotFoundError(QuizdraftError):
    def __init__(self, quiz_id: str):
        self.quiz_id = quiz_id
        super().__init__(f"Quiz {quiz_id} not found")


class NotOwnerError(QuizdraftError):
    def __init__(self, quiz_id: str, owner_id: str):
        self.quiz_id = quiz_id
        self.owner_id = owner_id
        super().__init__(f"Quiz {quiz_id} is not owned by {owner_id}")
