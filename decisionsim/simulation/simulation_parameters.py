"""
The parameters of one simulation run, validated on construction.

PROMPT> python -m decisionsim.simulation.simulation_parameters
"""
from dataclasses import dataclass, asdict
from typing import Any, Mapping
from decisionsim.simulation.errors import ValidationError

MAX_ATTEMPTS_MIN = 1
MAX_ATTEMPTS_MAX = 10
MAX_ATTEMPTS_DEFAULT = 5

COHERENCE_THRESHOLD_MIN = 0.0
COHERENCE_THRESHOLD_MAX = 1.0
COHERENCE_THRESHOLD_DEFAULT = 0.6

INTELLIGENCE_LEVEL_MIN = 1
INTELLIGENCE_LEVEL_MAX = 5
INTELLIGENCE_LEVEL_DEFAULT = 3

# Accepted keys when building parameters from a form submission.
FIELD_ALIASES = {
    "problemStatement": "problem_statement",
    "maxAttempts": "max_attempts",
    "coherenceThreshold": "coherence_threshold",
    "intelligenceLevel": "intelligence_level",
}

@dataclass(frozen=True)
class SimulationParameters:
    problem_statement: str
    max_attempts: int = MAX_ATTEMPTS_DEFAULT
    coherence_threshold: float = COHERENCE_THRESHOLD_DEFAULT
    intelligence_level: int = INTELLIGENCE_LEVEL_DEFAULT

    def __post_init__(self):
        if not isinstance(self.problem_statement, str) or not self.problem_statement.strip():
            raise ValidationError("problem_statement must be a non-empty string.", field_name="problem_statement")

        self._check_int("max_attempts", self.max_attempts, MAX_ATTEMPTS_MIN, MAX_ATTEMPTS_MAX)
        self._check_int("intelligence_level", self.intelligence_level, INTELLIGENCE_LEVEL_MIN, INTELLIGENCE_LEVEL_MAX)

        threshold = self.coherence_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValidationError(f"coherence_threshold must be a number, got {threshold!r}.", field_name="coherence_threshold")
        if not (COHERENCE_THRESHOLD_MIN <= threshold <= COHERENCE_THRESHOLD_MAX):
            raise ValidationError(
                f"coherence_threshold must be between {COHERENCE_THRESHOLD_MIN} and {COHERENCE_THRESHOLD_MAX}, got {threshold!r}.",
                field_name="coherence_threshold"
            )
        object.__setattr__(self, "coherence_threshold", float(threshold))

    @staticmethod
    def _check_int(field_name: str, value: Any, min_value: int, max_value: int) -> None:
        # bool is a subclass of int, but True is not a meaningful attempt count.
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field_name} must be an integer, got {value!r}.", field_name=field_name)
        if not (min_value <= value <= max_value):
            raise ValidationError(f"{field_name} must be between {min_value} and {max_value}, got {value!r}.", field_name=field_name)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> 'SimulationParameters':
        """
        Build parameters from a mapping with either camelCase or snake_case keys.
        Missing optional fields get their defaults. Unknown keys are rejected.
        """
        if not isinstance(d, Mapping):
            raise ValidationError(f"Expected a mapping of simulation parameters, got {type(d).__name__}.")
        kwargs = {}
        for key, value in d.items():
            name = FIELD_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ValidationError(f"Unknown simulation parameter: {key!r}.", field_name=key)
            if name in kwargs:
                raise ValidationError(f"Simulation parameter given twice: {name!r}.", field_name=name)
            kwargs[name] = value
        if "problem_statement" not in kwargs:
            raise ValidationError("problem_statement is required.", field_name="problem_statement")
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return asdict(self)

if __name__ == "__main__":
    parameters = SimulationParameters.from_dict({"problemStatement": "Should I move to Copenhagen?", "maxAttempts": 3})
    print(parameters)
    try:
        SimulationParameters(problem_statement="Quit my job?", max_attempts=11)
    except ValidationError as e:
        print(f"Rejected: {e} (field: {e.field_name})")
