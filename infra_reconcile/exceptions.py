"""
Exception hierarchy for the infrastructure reconciliation engine.

Only configuration and resolution-input errors reach callers. Per-resource
failures during scanning or execution are caught and recorded as text in
the corresponding result objects.
"""

from typing import Any, Dict, Optional


class ReconcileError(Exception):
    """
    Base class for reconciliation errors.

    Args:
        message: Human-readable error message
        error_code: Stable code for programmatic handling
        context: Extra key/value details rendered after the message
        cause: Underlying exception, if any
        recovery_suggestion: What the operator can do about it
    """

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}" if self.error_code else self.message]
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"(context: {details})")
        if self.cause:
            parts.append(f"(caused by: {self.cause})")
        if self.recovery_suggestion:
            parts.append(f"(suggestion: {self.recovery_suggestion})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured logs."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


def _merge_context(kwargs: Dict[str, Any], **items: Optional[str]) -> Dict[str, Any]:
    context = dict(kwargs.pop("context", None) or {})
    context.update({k: v for k, v in items.items() if v})
    kwargs["context"] = context
    return kwargs


class ConfigError(ReconcileError):
    """Raised when the project config cannot be found, parsed or validated."""

    default_code = "CONFIG_INVALID"

    def __init__(self, message: str, config_path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **_merge_context(kwargs, config_path=config_path))


class ScanError(ReconcileError):
    """Raised by a single kind query; the scanner turns it into a scan warning."""

    default_code = "SCAN_KIND_FAILED"

    def __init__(self, message: str, resource_kind: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **_merge_context(kwargs, resource_kind=resource_kind))


class StateFileError(ReconcileError):
    """Raised when a state file exists but cannot be interpreted."""

    default_code = "STATE_FILE_MALFORMED"

    def __init__(self, message: str, state_path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **_merge_context(kwargs, state_path=state_path))


class InvalidResolutionError(ReconcileError):
    """Raised when a resolution choice is rejected before execution."""

    default_code = "INVALID_RESOLUTION"

    def __init__(self, message: str, action: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **_merge_context(kwargs, action=action))


class ExecutionError(ReconcileError):
    """Raised when a single import or delete operation fails."""

    default_code = "OPERATION_FAILED"

    def __init__(self, message: str, resource_name: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **_merge_context(kwargs, resource_name=resource_name))


class ReconcileStateError(ReconcileError):
    """Raised on an illegal reconciliation stage transition."""

    default_code = "ILLEGAL_TRANSITION"

    def __init__(
        self,
        message: str,
        current_stage: Optional[str] = None,
        target_stage: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            **_merge_context(kwargs, current_stage=current_stage, target_stage=target_stage),
        )
