"""
Run a complete simulation: evaluate attempts, then synthesize the decision.

The two LLM calls are strictly sequential, since the decision depends on the attempts.
A run either produces a complete SimulationResult or raises SimulationFailure, there is no partial result.
The orchestrator keeps no state between runs.

PROMPT> python -m decisionsim.simulation.simulation_orchestrator
"""
import json
import time
import logging
from dataclasses import dataclass
from typing import Optional
from decisionsim.llm_util.llm_executor import ExecutionAbortedError
from decisionsim.llm_util.structured_generation import StructuredGenerationClient
from decisionsim.simulation.attempt_evaluator import AttemptEvaluator, AttemptEvaluation, AttemptRecord
from decisionsim.simulation.decision_synthesizer import AttemptSummary, DecisionSynthesizer, DecisionSynthesis, ResponseStyle, Verdict
from decisionsim.simulation.errors import SimulationFailure
from decisionsim.simulation.simulation_parameters import SimulationParameters

logger = logging.getLogger(__name__)

@dataclass
class SimulationResult:
    parameters: SimulationParameters
    attempt_evaluation: AttemptEvaluation
    decision_synthesis: DecisionSynthesis

    @property
    def attempts(self) -> list[AttemptRecord]:
        return self.attempt_evaluation.attempts

    @property
    def verdict(self) -> Verdict:
        return self.decision_synthesis.verdict

    def to_dict(self, include_metadata=True) -> dict:
        """The attempts and the verdict merged into one flat dictionary."""
        d = {
            "attempt_results": [attempt.model_dump() for attempt in self.attempts],
        }
        d.update(self.verdict.model_dump(mode='json'))
        if include_metadata:
            d["metadata"] = {
                "parameters": self.parameters.to_dict(),
                "attempt_evaluation": self.attempt_evaluation.metadata,
                "decision_synthesis": self.decision_synthesis.metadata,
            }
        return d

    def save_raw(self, file_path: str) -> None:
        with open(file_path, 'w') as f:
            f.write(json.dumps(self.to_dict(), indent=2))

    @property
    def markdown(self) -> str:
        rows = [
            f"# {self.parameters.problem_statement}",
            "",
            self.decision_synthesis.markdown,
            "",
            "# Attempts",
            "",
            self.attempt_evaluation.markdown,
        ]
        return "\n".join(rows)

    def save_markdown(self, output_file_path: str):
        with open(output_file_path, 'w', encoding='utf-8') as out_f:
            out_f.write(self.markdown)

class SimulationOrchestrator:
    def __init__(self, generation_client: StructuredGenerationClient, response_style: ResponseStyle = ResponseStyle.plain):
        self.attempt_evaluator = AttemptEvaluator(generation_client)
        self.decision_synthesizer = DecisionSynthesizer(generation_client, response_style)

    @staticmethod
    def summarize_attempts(attempts: list[AttemptRecord], timestamp: Optional[int] = None) -> list[AttemptSummary]:
        """Reduce the attempts to the fields that matter for the decision."""
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        return [
            AttemptSummary(
                attempt=attempt.attempt_number,
                coherence=attempt.coherence,
                reversible=attempt.reversible,
                safe=attempt.safe,
                timestamp=timestamp,
            )
            for attempt in attempts
        ]

    def run(self, parameters: SimulationParameters) -> SimulationResult:
        """
        :raises SimulationFailure: if any stage fails. The cause is logged, not exposed in the message.
        """
        if not isinstance(parameters, SimulationParameters):
            raise ValueError("Invalid SimulationParameters instance.")

        start_time = time.perf_counter()
        try:
            attempt_evaluation = self.attempt_evaluator.evaluate(parameters)
            attempt_summaries = self.summarize_attempts(attempt_evaluation.attempts)
            decision_synthesis = self.decision_synthesizer.synthesize(
                parameters.problem_statement,
                attempt_summaries,
                parameters.coherence_threshold,
            )
        except ExecutionAbortedError:
            raise
        except Exception as e:
            logger.error(f"Simulation failed: {e!r}", exc_info=True)
            raise SimulationFailure() from e

        duration = time.perf_counter() - start_time
        logger.info(f"Simulation completed in {duration:.2f} seconds. Attempts: {len(attempt_evaluation.attempts)}. Decision: {decision_synthesis.verdict.decision.value}")
        return SimulationResult(
            parameters=parameters,
            attempt_evaluation=attempt_evaluation,
            decision_synthesis=decision_synthesis,
        )

if __name__ == "__main__":
    from decisionsim.llm_util.llm_executor import LLMExecutor, LLMModelWithInstance
    from decisionsim.llm_util.response_mockllm import ResponseMockLLM

    logging.basicConfig(level=logging.INFO)

    attempts_json = json.dumps({"attempts": [
        {"attempt_number": 1, "coherence": 0.3, "reversible": True, "safe": True, "justification": "Too vague.", "success": False},
        {"attempt_number": 2, "coherence": 0.72, "reversible": True, "safe": True, "justification": "Concrete and testable.", "success": True},
    ]})
    verdict_json = json.dumps({"decision": "YES", "reason": "Attempt 2 reaches 0.72, above the threshold of 0.6.", "based_on_attempt": 2})
    llm = ResponseMockLLM(responses=[attempts_json, verdict_json])

    orchestrator = SimulationOrchestrator(StructuredGenerationClient(LLMExecutor(llm_models=[LLMModelWithInstance(llm)])))
    result = orchestrator.run(SimulationParameters(problem_statement="Should I learn to sail?", max_attempts=2))
    print(json.dumps(result.to_dict(include_metadata=False), indent=2))
    print(f"\n\nMarkdown:\n{result.markdown}")
