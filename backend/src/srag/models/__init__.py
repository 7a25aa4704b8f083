from .chunk import META_INDEX, Chunk, Document, RetrievalResult
from .completion import Completion, Usage
from .outcome import Degraded, Ok, Outcome
from .session import Attempt, Evaluation, QueryResult, Session, SessionState

__all__ = [
    "META_INDEX",
    "Attempt",
    "Chunk",
    "Completion",
    "Degraded",
    "Document",
    "Evaluation",
    "Ok",
    "Outcome",
    "QueryResult",
    "RetrievalResult",
    "Session",
    "SessionState",
    "Usage",
]
