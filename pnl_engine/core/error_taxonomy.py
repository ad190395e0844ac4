"""
Error Taxonomy for P&L Report Generation

Provides systematic classification of failure modes with:
- Error categories aligned to the report pipeline phases
- Recoverability indicators
- Structured error context for debugging

Most malformed input degrades locally (zero-coercion, placeholder documents,
gated suppression). Only structural misconfiguration surfaces as an error.
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import logging
import traceback

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Systematic classification of failure modes."""
    # Configuration
    CONFIGURATION_ERROR = auto()
    HIERARCHY_CYCLE = auto()
    CONFIG_FILE_UNREADABLE = auto()

    # Input data
    DATA_FORMAT_ERROR = auto()

    # System Errors
    UNKNOWN_ERROR = auto()


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ClassifiedError:
    """A classified error with full context."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    recoverable: bool

    original_exception: Optional[Exception] = None
    pipeline_phase: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None
    user_message: Optional[str] = None

    def __post_init__(self):
        if self.original_exception and not self.stack_trace:
            self.stack_trace = ''.join(traceback.format_exception(
                type(self.original_exception),
                self.original_exception,
                self.original_exception.__traceback__
            ))

        if not self.user_message:
            self.user_message = self._generate_user_message()

    def _generate_user_message(self) -> str:
        """Generate a user-friendly error message."""
        messages = {
            ErrorCategory.HIERARCHY_CYCLE: "The account hierarchy contains a cycle and cannot be rolled up.",
            ErrorCategory.CONFIG_FILE_UNREADABLE: "A configuration file could not be read.",
            ErrorCategory.DATA_FORMAT_ERROR: "The ledger data is not in the expected columnar format.",
        }
        return messages.get(self.category, f"An error occurred: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.name,
            "severity": self.severity.value,
            "message": self.message,
            "user_message": self.user_message,
            "recoverable": self.recoverable,
            "pipeline_phase": self.pipeline_phase,
            "context": self.context,
        }


class PnLError(Exception):
    """Base exception for report engine errors with classification."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        recoverable: bool = False,
        context: Dict[str, Any] = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.recoverable = recoverable
        self.context = context or {}

    def classify(self) -> ClassifiedError:
        return ClassifiedError(
            category=self.category,
            severity=self.severity,
            message=str(self),
            recoverable=self.recoverable,
            original_exception=self,
            context=dict(self.context),
        )


class ConfigError(PnLError):
    """Structural misconfiguration (hierarchy cycle, unreadable config file)."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.CONFIGURATION_ERROR,
        context: Dict[str, Any] = None,
    ):
        super().__init__(
            message,
            category=category,
            severity=ErrorSeverity.CRITICAL,
            recoverable=False,
            context=context,
        )

    @classmethod
    def cycle(cls, path: List[str]) -> "ConfigError":
        """Build the error raised when the parent relation loops back on itself."""
        return cls(
            f"Account hierarchy contains a cycle: {' -> '.join(path)}",
            category=ErrorCategory.HIERARCHY_CYCLE,
            context={"cycle": list(path)},
        )


def classify_error(
    exception: Exception,
    pipeline_phase: str = None,
    context: Dict[str, Any] = None,
) -> ClassifiedError:
    """Classify an exception into a structured error."""
    context = context or {}

    if isinstance(exception, PnLError):
        classified = exception.classify()
        classified.pipeline_phase = pipeline_phase
        classified.context.update(context)
        return classified

    # File system problems while reading configs or ledger extracts
    if isinstance(exception, (FileNotFoundError, PermissionError, IsADirectoryError)):
        return ClassifiedError(
            category=ErrorCategory.CONFIG_FILE_UNREADABLE,
            severity=ErrorSeverity.HIGH,
            message=str(exception),
            recoverable=False,
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    # Malformed JSON/YAML payloads or wrongly shaped columns
    if isinstance(exception, (ValueError, TypeError, KeyError)):
        return ClassifiedError(
            category=ErrorCategory.DATA_FORMAT_ERROR,
            severity=ErrorSeverity.MEDIUM,
            message=str(exception),
            recoverable=False,
            original_exception=exception,
            pipeline_phase=pipeline_phase,
            context=context,
        )

    # Default
    return ClassifiedError(
        category=ErrorCategory.UNKNOWN_ERROR,
        severity=ErrorSeverity.HIGH,
        message=str(exception),
        recoverable=False,
        original_exception=exception,
        pipeline_phase=pipeline_phase,
        context=context,
    )
