"""Exception types shared across the ingestion and query paths."""


class SRAGError(Exception):
    """Base class for sRAG errors."""


class TransientGatewayError(SRAGError):
    """An embedding, generation or vector-search call failed after retries."""

    def __init__(self, gateway: str, message: str, attempts: int = 1):
        super().__init__(f"{gateway} failed after {attempts} attempt(s): {message}")
        self.gateway = gateway
        self.attempts = attempts


class ContentError(SRAGError):
    """A document could not be read or produced no chunks."""


class EmptyContextError(SRAGError):
    """Retrieval found nothing to answer from."""


class ParseError(SRAGError):
    """Evaluator output was not well-formed."""
