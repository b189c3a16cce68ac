"""Base Agent interface for the storyboard generation pipelines

This module defines the core Agent interface that every generation stage
implements. Each agent has a single responsibility, explicit input/output
contracts, and reports unrecoverable failures as AgentExecutionError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# Error codes raised by service adapters for transport-level failures
SERVICE_ERROR_CODES = {
    'API_TIMEOUT',
    'API_RATE_LIMIT',
    'API_UNAVAILABLE',
    'NETWORK_ERROR',
    'INVALID_JSON',
    'SERVICE_ERROR',
    'MISSING_API_KEY',
}

# Error codes raised by the pipelines themselves
PIPELINE_ERROR_CODES = {
    'MISSING_INPUT',
    'MISSING_IDEA',
    'MISSING_SCRIPT_TEXT',
    'MISSING_AUDIO',
    'INVALID_REFERENCE_IMAGE',
    'NO_IMAGE_PRODUCED',
    'NO_VIDEO_PRODUCED',
    'VIDEO_GENERATION_FAILED',
    'VIDEO_POLL_TIMEOUT',
    'VIDEO_POLL_CANCELLED',
    'VIDEO_FETCH_FAILED',
    'IMPORT_FAILED',
    'SCENE_NOT_FOUND',
    'GENERATION_IN_PROGRESS',
    'DRAFT_UNREADABLE',
    'DRAFT_SAVE_FAILED',
    'MEDIA_WRITE_FAILED',
    'INVALID_INPUT',
    'UNEXPECTED_ERROR',
}


class BackoffStrategy(Enum):
    """Delay strategies between poll attempts"""
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    CONSTANT = "constant"


@dataclass
class PollPolicy:
    """Bounds for polling a long-running remote job

    Attributes:
        interval_seconds: Base delay before each status check
        max_attempts: Maximum number of status checks
        timeout_seconds: Maximum total time spent waiting
        backoff_strategy: Strategy for growing the delay between checks
        max_interval_seconds: Upper bound for a single delay
    """
    interval_seconds: float = 5.0
    max_attempts: int = 120
    timeout_seconds: float = 900.0
    backoff_strategy: BackoffStrategy = BackoffStrategy.CONSTANT
    max_interval_seconds: float = 60.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_seconds < 0 or self.timeout_seconds < 0:
            raise ValueError("intervals and timeouts cannot be negative")


class AgentInput(ABC):
    """Base class for agent input data

    All agent-specific input classes should inherit from this base class.
    """
    pass


class AgentOutput(ABC):
    """Base class for agent output data

    All agent-specific output classes should inherit from this base class.
    """
    pass


class AgentExecutionError(Exception):
    """Exception raised for unrecoverable agent execution failures

    Attributes:
        error_code: Machine-readable error code
        message: Human-readable error message (may be empty)
        context: Additional context about the failure
    """

    def __init__(self, error_code: str, message: str = "", context: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        super().__init__(f"[{error_code}] {message}")


class Agent(ABC):
    """Base interface for all generation agents

    Each agent implements a single stage of a storyboard pipeline. Agents
    never touch session state: they take an input object, call external
    services, and return an output object. Writing results into the scene
    list is the orchestrator's job.

    The agent interface provides two core methods:
    - execute(): Perform the agent's primary task (awaitable)
    - validate_input(): Verify input conforms to expected schema
    """

    @abstractmethod
    async def execute(self, input_data: AgentInput) -> AgentOutput:
        """Execute the agent's primary task

        Args:
            input_data: Agent-specific input object conforming to expected schema

        Returns:
            Agent-specific output object

        Raises:
            AgentExecutionError: For failures of this pipeline invocation
        """
        pass

    def validate_input(self, input_data: AgentInput) -> bool:
        """Validate input conforms to expected schema

        Args:
            input_data: Agent-specific input object to validate

        Returns:
            True if input is valid, False otherwise

        Note:
            This method should perform schema validation only, not business logic.
            It should be fast and deterministic.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement validate_input()"
        )
