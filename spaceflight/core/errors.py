"""
Error Types
===========

Exception hierarchy for the propagation core.

Structural, staging and warp errors are recoverable: the offending command
is rejected and reported while state stays untouched. Numerical instability
is fatal to one vehicle's step only.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SpaceflightError(Exception):
    """
    Base exception for all core errors.

    Carries an error code, a severity and free-form context so that callers
    can report rejected commands without parsing messages.
    """

    default_severity = ErrorSeverity.MEDIUM

    def __init__(self,
                 message: str,
                 error_code: Optional[str] = None,
                 severity: Optional[ErrorSeverity] = None,
                 context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier
            severity: Error severity level
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"{self.error_code}: {self.message}"]

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        if self.cause:
            parts.append(f"Caused by: {self.cause}")

        return " | ".join(parts)


class ConfigurationError(SpaceflightError):
    """Raised for invalid configuration values."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context=context, **kwargs)


# Part graph errors
class GraphError(SpaceflightError):
    """Structural violation of a vehicle part graph."""

    def __init__(self, message: str, part_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if part_id is not None:
            context['part_id'] = part_id
        super().__init__(message, context=context, **kwargs)


class CycleDetectedError(GraphError):
    """Attachment would create a cycle in the part tree."""

    def __init__(self, part_id: str, parent_id: str, **kwargs):
        message = f"Attaching '{part_id}' to '{parent_id}' would create a cycle"
        kwargs.setdefault('error_code', 'CycleDetected')
        super().__init__(message, part_id=part_id,
                         context={'parent_id': parent_id}, **kwargs)


class UnknownParentError(GraphError):
    """Attachment parent is not part of the graph."""

    def __init__(self, part_id: str, parent_id: str, **kwargs):
        message = f"Parent '{parent_id}' of '{part_id}' is not attached"
        kwargs.setdefault('error_code', 'UnknownParent')
        super().__init__(message, part_id=part_id,
                         context={'parent_id': parent_id}, **kwargs)


class RootDetachError(GraphError):
    """The command root cannot be detached."""

    def __init__(self, part_id: str, **kwargs):
        kwargs.setdefault('error_code', 'RootDetach')
        super().__init__(f"Cannot detach command root '{part_id}'",
                         part_id=part_id, **kwargs)


class UnknownPartError(GraphError):
    """Part id is not in the graph."""

    def __init__(self, part_id: str, **kwargs):
        kwargs.setdefault('error_code', 'UnknownPart')
        super().__init__(f"Part '{part_id}' is not attached", part_id=part_id, **kwargs)


class DuplicatePartError(GraphError):
    """A different part with the same id already exists."""

    def __init__(self, part_id: str, **kwargs):
        kwargs.setdefault('error_code', 'DuplicatePart')
        super().__init__(f"Part id '{part_id}' already in use", part_id=part_id, **kwargs)


# Staging errors
class StagingError(SpaceflightError):
    """Invalid staging request."""
    default_severity = ErrorSeverity.LOW


class NoStagesRemainError(StagingError):
    """Staging requested at the terminal stage."""

    def __init__(self, stage_index: int, **kwargs):
        kwargs.setdefault('error_code', 'NoStagesRemain')
        super().__init__(f"No stages remain after stage {stage_index}",
                         context={'stage_index': stage_index}, **kwargs)


# Time warp errors
class WarpError(SpaceflightError):
    """Rejected time-warp request."""
    default_severity = ErrorSeverity.LOW


class UnsafeWarpContextError(WarpError):
    """Warp above real time requested in a physics-sensitive context."""

    def __init__(self, factor: float, reasons, **kwargs):
        reasons = list(reasons)
        kwargs.setdefault('error_code', 'UnsafeContext')
        super().__init__(f"Cannot warp to {factor:g}x: {', '.join(reasons)}",
                         context={'factor': factor, 'reasons': reasons}, **kwargs)
        self.reasons = reasons


class InvalidWarpFactorError(WarpError):
    """Requested factor is not on the warp ladder."""

    def __init__(self, factor: float, ladder, **kwargs):
        kwargs.setdefault('error_code', 'InvalidWarpFactor')
        super().__init__(f"Warp factor {factor:g} is not one of {tuple(ladder)}",
                         context={'factor': factor}, **kwargs)


# Propagation errors
class PropagationError(SpaceflightError):
    """Propagation failure."""
    default_severity = ErrorSeverity.HIGH


class NumericalInstabilityError(PropagationError):
    """Integrator produced non-finite or runaway values."""

    def __init__(self, message: str, vehicle_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if vehicle_id is not None:
            context['vehicle_id'] = vehicle_id
        kwargs.setdefault('error_code', 'NumericalInstability')
        super().__init__(message, context=context, **kwargs)


# Frame and catalog errors
class FrameError(SpaceflightError):
    """Reference frame bookkeeping violation."""
    default_severity = ErrorSeverity.CRITICAL


class CatalogError(SpaceflightError):
    """Invalid celestial body catalog or lookup."""

    def __init__(self, message: str, body_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if body_id is not None:
            context['body_id'] = body_id
        super().__init__(message, context=context, **kwargs)


class CommandError(SpaceflightError):
    """Malformed vehicle command (unknown vehicle, invalid value)."""
    default_severity = ErrorSeverity.LOW

    def __init__(self, message: str, vehicle_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if vehicle_id is not None:
            context['vehicle_id'] = vehicle_id
        super().__init__(message, context=context, **kwargs)
