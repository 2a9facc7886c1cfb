from typing import List, Optional


class SearchError(Exception):
    """Base class for everything the search pipeline raises."""


class CriteriaValidationError(SearchError):
    def __init__(self, reasons: List[str]):
        self.reasons = list(reasons)
        super().__init__("; ".join(self.reasons) or "invalid search criteria")


class LocationUnresolved(SearchError):
    def __init__(self, text: str, confidence: float = 0.0, best_match: Optional[str] = None):
        self.text = text
        self.confidence = confidence
        self.best_match = best_match
        super().__init__(
            f"Could not resolve location {text!r} (best={best_match!r}, confidence={confidence:.2f}). "
            "Check the city or neighborhood name."
        )


class SourceError(SearchError):
    def __init__(self, source_id: str, message: str = ""):
        self.source_id = source_id
        super().__init__(f"[{source_id}] {message}".strip())


class SourceTimeout(SourceError):
    pass


class SourceExtractionFailure(SourceError):
    pass


class AggregateSearchFailure(SearchError):
    pass
