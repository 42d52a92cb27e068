"""
Errors raised by the simulation core.

ValidationError is a caller mistake and is raised before any LLM is contacted.
GenerationFailure and SchemaViolation come from the two generation stages.
SimulationFailure is the only error a failed run surfaces to the caller. Its message is
fixed, the underlying cause is chained and logged but never part of the message.
"""
from typing import Optional

class DecisionSimError(Exception):
    """Base class for all errors raised by the simulation core."""
    pass

class ValidationError(DecisionSimError, ValueError):
    """Raised when a simulation parameter is missing or out of its declared range."""
    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name

class GenerationFailure(DecisionSimError):
    """The LLM was unreachable, or its response didn't conform to the requested schema."""
    pass

class SchemaViolation(DecisionSimError):
    """The LLM response is structurally valid, but logically inconsistent with the attempts."""
    pass

SIMULATION_FAILURE_MESSAGE = "The simulation failed. Please check the model configuration and try again."

class SimulationFailure(DecisionSimError):
    """The opaque error reported to the caller when a simulation run fails."""
    def __init__(self, message: str = SIMULATION_FAILURE_MESSAGE):
        super().__init__(message)
