"""
Synthesize a final YES/NO decision from the scored attempts.

The decision itself is not up to the LLM. If any attempt has a coherence greater than or
equal to the threshold, the decision is YES and it's based on the qualifying attempt with the
highest coherence (equal coherence goes to the lowest attempt number). Otherwise the decision is NO.
The LLM writes the reason, and its response is checked against that outcome.

PROMPT> python -m decisionsim.simulation.decision_synthesizer
"""
import json
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from decisionsim.llm_util.structured_generation import StructuredGenerationClient
from decisionsim.simulation.errors import SchemaViolation

logger = logging.getLogger(__name__)

class Decision(str, Enum):
    YES = 'YES'
    NO = 'NO'

class ResponseStyle(str, Enum):
    # Concise and neutral.
    plain = 'plain'
    # In-character voice of a seasoned strategist.
    stylized = 'stylized'

class AttemptSummary(BaseModel):
    """The decision-relevant view of an attempt. The justification text is left out."""
    model_config = ConfigDict(frozen=True)

    attempt: int = Field(ge=1, description="Attempt number")
    coherence: float = Field(ge=0.0, le=1.0, description="Coherence score (0-1)")
    reversible: bool = Field(description="Whether the attempt is reversible")
    safe: bool = Field(description="Whether the attempt is safe")
    timestamp: Optional[int] = Field(default=None, description="Milliseconds since the epoch when the summary was made")

class DecisionDocument(BaseModel):
    decision: Decision = Field(
        description="The final decision."
    )
    reason: str = Field(
        description="The reasoning behind the decision."
    )
    based_on_attempt: Optional[int] = Field(
        default=None,
        description="The attempt number the decision is based on. Only when the decision is YES."
    )

class Verdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: Decision
    reason: str
    based_on_attempt: Optional[int] = None

@dataclass(frozen=True)
class ExpectedOutcome:
    decision: Decision
    based_on_attempt: Optional[int]
    qualifying_attempts: list[int]
    closest_attempt: AttemptSummary

    @classmethod
    def from_attempts(cls, attempts: list[AttemptSummary], coherence_threshold: float) -> 'ExpectedOutcome':
        if not attempts:
            raise ValueError("Cannot determine an outcome without attempts.")
        # Highest coherence first, ties resolved by the lowest attempt number.
        ranked = sorted(attempts, key=lambda item: (-item.coherence, item.attempt))
        qualifying = [item for item in ranked if item.coherence >= coherence_threshold]
        if qualifying:
            return cls(
                decision=Decision.YES,
                based_on_attempt=qualifying[0].attempt,
                qualifying_attempts=sorted(item.attempt for item in qualifying),
                closest_attempt=ranked[0],
            )
        return cls(
            decision=Decision.NO,
            based_on_attempt=None,
            qualifying_attempts=[],
            closest_attempt=ranked[0],
        )

DECISION_SYNTHESIS_SYSTEM_PROMPT = """
You synthesize a final decision (YES/NO) from the evaluation of multiple simulated attempts at resolving a problem.

You are given a problem statement, a coherence threshold and a list of attempts. Each attempt has a coherence score, a reversible flag, a safe flag and a timestamp.
The outcome has already been determined from the coherence threshold, and it's stated by the user under "Required outcome". Your job is to explain it.

## JSON Model

### DecisionDocument
- **decision** (YES or NO):
  - Exactly the required decision.
- **reason** (string):
  - If the decision is YES, name the attempt the decision is based on and how its coherence compares to the threshold. Mention when that attempt is irreversible or unsafe.
  - If the decision is NO, explain why no attempt qualified, and name the closest coherence that was achieved and how far it fell short.
- **based_on_attempt** (integer or null):
  - If the decision is YES, exactly the required attempt number.
  - If the decision is NO, null.

Example:
{
  "decision": "YES",
  "reason": "Attempt 3 reaches a coherence of 0.72, which meets the coherence threshold of 0.6.",
  "based_on_attempt": 3
}
"""

RESPONSE_STYLE_PROMPTS = {
    ResponseStyle.plain: "Write the reason in a concise, neutral tone. At most three sentences.",
    ResponseStyle.stylized: "Write the reason in the voice of a seasoned strategist addressing the user directly, vivid but brief. At most four sentences. The facts must stay exact.",
}

@dataclass
class DecisionSynthesis:
    system_prompt: str
    user_prompt: str
    verdict: Verdict
    metadata: dict
    markdown: str

    def to_dict(self, include_metadata=True, include_system_prompt=True, include_user_prompt=True) -> dict:
        d = self.verdict.model_dump(mode='json')
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
    def convert_to_markdown(verdict: Verdict) -> str:
        rows = []
        rows.append(f"**Decision:** {verdict.decision.value}")
        if verdict.based_on_attempt is not None:
            rows.append(f"\n**Based on attempt:** {verdict.based_on_attempt}")
        rows.append(f"\n**Reason:** {verdict.reason}")
        return "\n".join(rows)

class DecisionSynthesizer:
    def __init__(self, generation_client: StructuredGenerationClient, response_style: ResponseStyle = ResponseStyle.plain):
        if not isinstance(generation_client, StructuredGenerationClient):
            raise ValueError("Invalid StructuredGenerationClient instance.")
        self.generation_client = generation_client
        self.response_style = ResponseStyle(response_style)

    def system_prompt(self) -> str:
        return DECISION_SYNTHESIS_SYSTEM_PROMPT.strip() + "\n\n## Tone\n\n" + RESPONSE_STYLE_PROMPTS[self.response_style]

    @staticmethod
    def format_user_prompt(problem_statement: str, attempts: list[AttemptSummary], coherence_threshold: float, outcome: ExpectedOutcome) -> str:
        rows = [
            f"Problem Statement: {problem_statement}",
            f"Coherence Threshold: {coherence_threshold}",
            "Attempts:",
        ]
        for item in attempts:
            rows.append(f"  Attempt {item.attempt}:")
            rows.append(f"    Coherence: {item.coherence}")
            rows.append(f"    Reversible: {item.reversible}")
            rows.append(f"    Safe: {item.safe}")
            if item.timestamp is not None:
                rows.append(f"    Timestamp: {item.timestamp}")

        rows.append("")
        rows.append("Required outcome:")
        rows.append(f"  decision: {outcome.decision.value}")
        if outcome.decision == Decision.YES:
            rows.append(f"  based_on_attempt: {outcome.based_on_attempt}")
            rows.append(f"  qualifying attempts: {', '.join(str(number) for number in outcome.qualifying_attempts)}")
        else:
            closest = outcome.closest_attempt
            shortfall = coherence_threshold - closest.coherence
            rows.append("  based_on_attempt: null")
            rows.append(f"  closest attempt: {closest.attempt} with coherence {closest.coherence}, {shortfall:.2f} below the threshold")
        return "\n".join(rows)

    def synthesize(self, problem_statement: str, attempts: list[AttemptSummary], coherence_threshold: float) -> DecisionSynthesis:
        """
        :raises GenerationFailure: if the LLM fails or its response doesn't match the schema.
        :raises SchemaViolation: if the response contradicts the required outcome.
        """
        if not isinstance(problem_statement, str) or not problem_statement.strip():
            raise ValueError("Invalid problem_statement.")
        if not attempts:
            raise ValueError("At least one attempt is required.")
        attempt_numbers = [item.attempt for item in attempts]
        if len(set(attempt_numbers)) != len(attempt_numbers):
            raise ValueError(f"Attempt numbers must be unique, got {attempt_numbers!r}.")

        outcome = ExpectedOutcome.from_attempts(attempts, coherence_threshold)
        logger.debug(f"Required outcome: {outcome.decision.value}, based_on_attempt: {outcome.based_on_attempt}")

        system_prompt = self.system_prompt()
        user_prompt = self.format_user_prompt(problem_statement, attempts, coherence_threshold, outcome)

        result = self.generation_client.generate(system_prompt, user_prompt, DecisionDocument)
        document = result.response
        self.raise_if_inconsistent(document, outcome)

        verdict = Verdict(
            decision=document.decision,
            reason=document.reason,
            based_on_attempt=document.based_on_attempt,
        )

        metadata = dict(result.metadata)
        metadata["response_style"] = self.response_style.value

        return DecisionSynthesis(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            verdict=verdict,
            metadata=metadata,
            markdown=DecisionSynthesis.convert_to_markdown(verdict),
        )

    @staticmethod
    def raise_if_inconsistent(document: DecisionDocument, outcome: ExpectedOutcome) -> None:
        if document.decision != outcome.decision:
            message = f"The LLM decided {document.decision.value}, but the attempts require {outcome.decision.value}."
        elif document.decision == Decision.YES and document.based_on_attempt is None:
            message = "The LLM decided YES without naming the attempt it's based on."
        elif document.decision == Decision.NO and document.based_on_attempt is not None:
            message = f"The LLM decided NO, but named attempt {document.based_on_attempt} as its basis."
        elif document.decision == Decision.YES and document.based_on_attempt not in outcome.qualifying_attempts:
            message = f"The LLM based its decision on attempt {document.based_on_attempt}, which doesn't meet the coherence threshold."
        elif document.based_on_attempt != outcome.based_on_attempt:
            message = f"The LLM based its decision on attempt {document.based_on_attempt}, but the highest coherence attempt is {outcome.based_on_attempt}."
        else:
            return
        logger.error(message)
        raise SchemaViolation(message)

if __name__ == "__main__":
    from decisionsim.llm_util.llm_executor import LLMExecutor, LLMModelFromName
    from decisionsim.llm_factory import get_llm_names_by_priority

    logging.basicConfig(level=logging.DEBUG)

    llm_models = LLMModelFromName.from_names(get_llm_names_by_priority())
    synthesizer = DecisionSynthesizer(StructuredGenerationClient(LLMExecutor(llm_models=llm_models)), ResponseStyle.stylized)
    attempts = [
        AttemptSummary(attempt=1, coherence=0.3, reversible=True, safe=True),
        AttemptSummary(attempt=2, coherence=0.5, reversible=False, safe=True),
        AttemptSummary(attempt=3, coherence=0.72, reversible=True, safe=False),
    ]
    synthesis = synthesizer.synthesize("Should I adopt a second dog?", attempts, 0.6)
    print(json.dumps(synthesis.to_dict(include_system_prompt=False, include_user_prompt=False), indent=2))
