"""Exception types for import runs.

Every error carries a one-line summary (prefixed with ``[dataset.table]``
when known), a ``details`` dict and an optional suggestion. ``str(error)``
renders all three; the CLI prints only the first line.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = [
    "ExportError",
    "ProvisioningError",
    "InsertionError",
    "SourceQueryError",
    "CheckpointError",
    "ConfigurationError",
    "ValidationError",
]


def _merge(details: Optional[Dict[str, Any]], **fields: Any) -> Dict[str, Any]:
    merged = dict(details or {})
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


class ExportError(Exception):
    """Base class for all import failures."""

    default_suggestion: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        dataset: Optional[str] = None,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.dataset = dataset
        self.table = table
        self.cause = cause
        self.details = dict(details or {})
        if cause is not None:
            self.details.setdefault("cause", str(cause))
            self.details.setdefault("cause_type", type(cause).__name__)
        self.suggestion = suggestion or self.default_suggestion

        if dataset or table:
            message = f"[{dataset or '?'}.{table or '?'}] {message}"
        self.summary = message
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [self.summary]
        if self.details:
            lines.append("\nDetails:")
            lines.extend(f"  {key}: {value}" for key, value in self.details.items())
        if self.suggestion:
            lines.append(f"\nSuggestion: {self.suggestion}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for JSON logs."""
        return {
            "error_type": type(self).__name__,
            "message": self.summary,
            "dataset": self.dataset,
            "table": self.table,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ProvisioningError(ExportError):
    """Creating or inspecting the dataset, changelog table or latest view failed.

    The tracker logs this and still attempts the insert.
    """

    def __init__(self, message: str, *, resource: Optional[str] = None, **kwargs: Any) -> None:
        self.resource = resource
        details = _merge(kwargs.pop("details", None), resource=resource)
        super().__init__(message, details=details, **kwargs)


class InsertionError(ExportError):
    """The destination rejected a streaming insert.

    ``row_errors`` holds the per-row payloads reported by the destination,
    each keyed by the index of the rejected row within the batch.
    """

    default_suggestion = (
        "Check that the changelog table schema matches the row shape. "
        "Re-running resumes from the last committed page."
    )

    def __init__(
        self,
        message: str,
        *,
        row_count: int = 0,
        row_errors: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> None:
        self.row_count = row_count
        self.row_errors = list(row_errors or [])
        details = _merge(
            kwargs.pop("details", None),
            row_count=row_count,
            rejected_rows=len(self.row_errors) or None,
            first_error=self.row_errors[0] if self.row_errors else None,
        )
        super().__init__(message, details=details, **kwargs)


class SourceQueryError(ExportError):
    """A page (or the checkpointed document) could not be read from Firestore."""

    default_suggestion = (
        "Check Firestore credentials and the collection path. "
        "The checkpoint was kept, so re-running resumes here."
    )

    def __init__(
        self,
        message: str,
        *,
        source_path: Optional[str] = None,
        cursor: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.source_path = source_path
        self.cursor = cursor
        details = _merge(kwargs.pop("details", None), source_path=source_path, cursor=cursor)
        super().__init__(message, details=details, **kwargs)


class CheckpointError(ExportError):
    """A checkpoint could not be read, written, deleted or resolved."""

    def __init__(
        self,
        message: str,
        *,
        location: Optional[str] = None,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.location = location
        self.token = token
        details = _merge(kwargs.pop("details", None), location=location, token=token)
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(ExportError):
    """A config file, flag or environment value is unusable."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        details = _merge(
            kwargs.pop("details", None),
            field=field,
            value=None if value is None else str(value),
        )
        super().__init__(message, details=details, **kwargs)


class ValidationError(ExportError):
    """``ImportConfig.validate()`` reported problems."""

    def __init__(self, message: str, *, issues: Optional[List[str]] = None, **kwargs: Any) -> None:
        self.issues = list(issues or [])
        if self.issues:
            listed = "\n".join(f"  - {issue}" for issue in self.issues)
            message = f"{message}\n\nIssues found:\n{listed}"
        details = _merge(kwargs.pop("details", None), issue_count=len(self.issues) or None)
        super().__init__(message, details=details, **kwargs)
