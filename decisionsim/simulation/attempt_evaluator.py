"""
Simulate several attempts at resolving a problem, and score each attempt.

Each attempt gets an independent coherence estimate between 0 and 1, plus flags for whether
the attempt is reversible and whether it's safe. An attempt succeeds when its coherence
meets or exceeds the coherence threshold.

The LLM is asked for up to `max_attempts` attempts. Fewer is fine, zero or more is a failure.

PROMPT> python -m decisionsim.simulation.attempt_evaluator
"""
import json
import logging
from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict, Field
from decisionsim.llm_util.structured_generation import StructuredGenerationClient
from decisionsim.simulation.errors import GenerationFailure
from decisionsim.simulation.simulation_parameters import SimulationParameters

logger = logging.getLogger(__name__)

class AttemptItem(BaseModel):
    attempt_number: int = Field(
        description="Enumerate the attempts starting from 1."
    )
    coherence: float = Field(
        ge=0.0,
        le=1.0,
        description="How well this attempt resolves the problem. A number between 0 and 1."
    )
    reversible: bool = Field(
        description="True if the consequences of this attempt can be undone."
    )
    safe: bool = Field(
        description="True if this attempt carries no serious risk of harm."
    )
    justification: str = Field(
        description="Explain the coherence score of this attempt."
    )
    success: bool = Field(
        description="True if coherence is greater than or equal to the coherence threshold."
    )

class AttemptEvaluationDocument(BaseModel):
    attempts: list[AttemptItem] = Field(
        description="The simulated attempts, no more than the maximum number of attempts."
    )

class AttemptRecord(BaseModel):
    """One scored attempt. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    attempt_number: int = Field(ge=1)
    coherence: float = Field(ge=0.0, le=1.0)
    reversible: bool
    safe: bool
    justification: str
    success: bool

# Depth of the justification text. This must never influence the scores themselves.
JUSTIFICATION_DEPTH = {
    1: "Write a single short sentence per justification, in plain words.",
    2: "Write two sentences per justification, naming the main strength or weakness of the attempt.",
    3: "Write a short paragraph per justification, covering how the attempt addresses the problem and its main risk.",
    4: "Write a detailed paragraph per justification, weighing trade-offs and second-order effects.",
    5: "Write an expert-level justification that considers the people affected, second-order effects, likely failure modes and what would change the score.",
}

ATTEMPT_EVALUATION_SYSTEM_PROMPT = """
You are a decision analyst. The user is considering a problem or choice. Simulate independent attempts at resolving it, and evaluate each attempt on its own merits.

## JSON Model

### AttemptItem
- **attempt_number** (integer):
  - Enumerate the attempts starting from 1, with no gaps.
- **coherence** (number):
  - A number between 0 and 1 estimating how well this attempt resolves the problem.
  - Estimate it independently for each attempt. Attempts don't have to improve over time, a later attempt may score lower than an earlier one.
- **reversible** (boolean):
  - `true` if the consequences of the attempt can be undone without lasting cost.
- **safe** (boolean):
  - `true` if the attempt carries no serious risk of harm to the user or to others.
- **justification** (string):
  - Why the attempt got its coherence score. Follow the requested justification depth.
- **success** (boolean):
  - `true` if and only if `coherence` is greater than or equal to the coherence threshold.

### AttemptEvaluationDocument
- **attempts** (list of AttemptItem):
  - No more than the maximum number of attempts stated by the user. Fewer is acceptable when the problem doesn't allow that many distinct attempts.

Each attempt must be a genuinely different way of approaching the problem, not a rephrasing of an earlier attempt.
"""

@dataclass
class AttemptEvaluation:
    """
    The scored attempts of one simulation run, together with what was sent to the LLM.
    """
    system_prompt: str
    user_prompt: str
    attempts: list[AttemptRecord]
    metadata: dict
    markdown: str

    def to_dict(self, include_metadata=True, include_system_prompt=True, include_user_prompt=True) -> dict:
        d = {
            "attempt_results": [attempt.model_dump() for attempt in self.attempts],
        }
        if include_metadata:
            d['metadata'] = self.metadata
        if include_system_prompt:
            d['system_prompt'] = self.system_prompt
        if include_user_prompt:
            d['user_prompt'] = self.user_prompt
        return d

    def save_raw(self, file_path: str) -> None:
        with open(file_path, 'w') as f:
            f.write(json.dumps(self.to_dict(), indent=2))

    def save_markdown(self, output_file_path: str):
        with open(output_file_path, 'w', encoding='utf-8') as out_f:
            out_f.write(self.markdown)

    @staticmethod
    def convert_to_markdown(attempts: list[AttemptRecord], coherence_threshold: float) -> str:
        rows = []
        rows.append(f"Coherence threshold: {coherence_threshold:.2f}\n")
        rows.append("| Attempt | Coherence | Reversible | Safe | Success |")
        rows.append("|---|---|---|---|---|")
        for attempt in attempts:
            reversible = "Reversible" if attempt.reversible else "Irreversible"
            safe = "Safe" if attempt.safe else "Risky"
            success = "Yes" if attempt.success else "No"
            rows.append(f"| {attempt.attempt_number} | {attempt.coherence:.2f} | {reversible} | {safe} | {success} |")
        for attempt in attempts:
            rows.append(f"\n## Attempt {attempt.attempt_number}\n\n{attempt.justification}")
        return "\n".join(rows)

class AttemptEvaluator:
    def __init__(self, generation_client: StructuredGenerationClient):
        if not isinstance(generation_client, StructuredGenerationClient):
            raise ValueError("Invalid StructuredGenerationClient instance.")
        self.generation_client = generation_client

    @staticmethod
    def format_user_prompt(parameters: SimulationParameters) -> str:
        depth = JUSTIFICATION_DEPTH[parameters.intelligence_level]
        return (
            f"Problem statement:\n{parameters.problem_statement}\n\n"
            f"Maximum number of attempts: {parameters.max_attempts}\n\n"
            f"Coherence threshold: {parameters.coherence_threshold}\n\n"
            f"Intelligence level: {parameters.intelligence_level} of 5\n"
            f"Justification depth: {depth}"
        )

    def evaluate(self, parameters: SimulationParameters) -> AttemptEvaluation:
        """
        Generate and score the attempts.

        :raises GenerationFailure: if the LLM fails, returns zero attempts, or more than max_attempts.
        """
        if not isinstance(parameters, SimulationParameters):
            raise ValueError("Invalid SimulationParameters instance.")

        system_prompt = ATTEMPT_EVALUATION_SYSTEM_PROMPT.strip()
        user_prompt = self.format_user_prompt(parameters)

        result = self.generation_client.generate(system_prompt, user_prompt, AttemptEvaluationDocument)
        items = result.response.attempts

        if not items:
            logger.error("The LLM returned zero attempts.")
            raise GenerationFailure("The LLM returned zero attempts.")
        if len(items) > parameters.max_attempts:
            logger.error(f"The LLM returned {len(items)} attempts, but at most {parameters.max_attempts} were requested.")
            raise GenerationFailure(f"The LLM returned {len(items)} attempts, but at most {parameters.max_attempts} were requested.")

        attempts = self.records_from_items(items, parameters.coherence_threshold)

        metadata = dict(result.metadata)
        metadata["attempt_count"] = len(attempts)

        return AttemptEvaluation(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            attempts=attempts,
            metadata=metadata,
            markdown=AttemptEvaluation.convert_to_markdown(attempts, parameters.coherence_threshold),
        )

    @staticmethod
    def records_from_items(items: list[AttemptItem], coherence_threshold: float) -> list[AttemptRecord]:
        """
        Attempt numbers are assigned by position, so they always start at 1 without gaps.
        The success flag is derived from the coherence, whatever the LLM claimed.
        """
        records = []
        for attempt_number, item in enumerate(items, start=1):
            if item.attempt_number != attempt_number:
                logger.warning(f"The LLM numbered attempt {attempt_number} as {item.attempt_number}. Renumbering.")
            success = item.coherence >= coherence_threshold
            if item.success != success:
                logger.warning(f"Attempt {attempt_number} has coherence {item.coherence}, but the LLM claimed success={item.success}. Using success={success}.")
            records.append(AttemptRecord(
                attempt_number=attempt_number,
                coherence=item.coherence,
                reversible=item.reversible,
                safe=item.safe,
                justification=item.justification,
                success=success,
            ))
        return records

if __name__ == "__main__":
    from decisionsim.llm_util.llm_executor import LLMExecutor, LLMModelFromName
    from decisionsim.llm_factory import get_llm_names_by_priority

    logging.basicConfig(level=logging.DEBUG)

    llm_models = LLMModelFromName.from_names(get_llm_names_by_priority())
    evaluator = AttemptEvaluator(StructuredGenerationClient(LLMExecutor(llm_models=llm_models)))
    parameters = SimulationParameters(problem_statement="Should I adopt a second dog?", max_attempts=3)
    evaluation = evaluator.evaluate(parameters)

    print("\n\nResponse:")
    print(json.dumps(evaluation.to_dict(include_system_prompt=False, include_user_prompt=False), indent=2))
    print(f"\n\nMarkdown:\n{evaluation.markdown}")
