"""ErrorReport: one display surface for local and backend validation errors."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from bulkorder.core.exceptions.errors import LocalValidationError, SubmissionError

# Key used for messages that are not tied to a specific field path.
GENERAL_KEY = "_general"


@dataclass
class ErrorReport:
    """Merged error list keyed by field path.

    Local validation messages land under ``_general``; backend field errors
    keep their own paths (``items_add.0.deliveries.1.delivery_date``).
    Callers render both the same way.
    """

    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not any(self.errors.values())

    def add(self, path: str, message: str) -> None:
        bucket = self.errors.setdefault(path or GENERAL_KEY, [])
        if message not in bucket:
            bucket.append(message)

    def merge_local(self, exc: LocalValidationError) -> "ErrorReport":
        for msg in exc.messages:
            self.add(GENERAL_KEY, msg)
        return self

    def merge_submission(self, exc: SubmissionError) -> "ErrorReport":
        if not exc.field_errors:
            self.add(GENERAL_KEY, exc.message)
            return self
        for path, msgs in exc.field_errors.items():
            for msg in msgs:
                self.add(path, msg)
        return self

    def messages(self) -> List[str]:
        """Flat list, general messages first, then fields in insertion order."""
        out: List[str] = list(self.errors.get(GENERAL_KEY, []))
        for path, msgs in self.errors.items():
            if path != GENERAL_KEY:
                out.extend(msgs)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": {k: list(v) for k, v in self.errors.items() if v}}
