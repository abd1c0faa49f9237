from typing import List, Optional


class InvalidInputError(ValueError):
    """Raised before any computation when the decision data cannot be ranked."""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message)
        self.issues = list(issues) if issues else [message]
