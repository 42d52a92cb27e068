import json
import unittest
from decisionsim.llm_util.llm_executor import LLMExecutor, LLMModelWithInstance
from decisionsim.llm_util.response_mockllm import ResponseMockLLM
from decisionsim.llm_util.structured_generation import StructuredGenerationClient
from decisionsim.simulation.attempt_evaluator import AttemptEvaluator, AttemptRecord, JUSTIFICATION_DEPTH
from decisionsim.simulation.errors import GenerationFailure
from decisionsim.simulation.simulation_parameters import SimulationParameters

def attempts_response(coherences: list[float], success: bool = False, numbers: list[int] = None) -> str:
    numbers = numbers or list(range(1, len(coherences) + 1))
    attempts = []
    for number, coherence in zip(numbers, coherences):
        attempts.append({
            "attempt_number": number,
            "coherence": coherence,
            "reversible": number % 2 == 1,
            "safe": True,
            "justification": f"Justification for attempt {number}.",
            "success": success,
        })
    return json.dumps({"attempts": attempts})

def create_evaluator(responses: list[str]) -> tuple[AttemptEvaluator, ResponseMockLLM]:
    llm = ResponseMockLLM(responses=responses)
    executor = LLMExecutor(llm_models=[LLMModelWithInstance(llm)])
    return AttemptEvaluator(StructuredGenerationClient(executor)), llm

class TestAttemptEvaluator(unittest.TestCase):
    def test_records_are_created(self):
        # Arrange
        evaluator, llm = create_evaluator([attempts_response([0.3, 0.5, 0.72])])
        parameters = SimulationParameters(problem_statement="Should I move?", max_attempts=5, coherence_threshold=0.6)

        # Act
        evaluation = evaluator.evaluate(parameters)

        # Assert
        self.assertEqual(llm.call_count, 1)
        self.assertEqual([attempt.attempt_number for attempt in evaluation.attempts], [1, 2, 3])
        self.assertEqual([attempt.coherence for attempt in evaluation.attempts], [0.3, 0.5, 0.72])
        self.assertEqual([attempt.success for attempt in evaluation.attempts], [False, False, True])
        self.assertEqual([attempt.reversible for attempt in evaluation.attempts], [True, False, True])
        self.assertEqual(evaluation.metadata["attempt_count"], 3)
        self.assertIn("| 3 | 0.72 | Reversible | Safe | Yes |", evaluation.markdown)

    def test_fewer_attempts_than_requested_is_fine(self):
        evaluator, _ = create_evaluator([attempts_response([0.9])])
        parameters = SimulationParameters(problem_statement="Should I move?", max_attempts=10)
        evaluation = evaluator.evaluate(parameters)
        self.assertEqual(len(evaluation.attempts), 1)

    def test_success_is_derived_from_coherence(self):
        """The LLM claims every attempt succeeded, but only one meets the threshold."""
        evaluator, _ = create_evaluator([attempts_response([0.59, 0.6, 0.2], success=True)])
        parameters = SimulationParameters(problem_statement="Should I move?", coherence_threshold=0.6)
        evaluation = evaluator.evaluate(parameters)
        self.assertEqual([attempt.success for attempt in evaluation.attempts], [False, True, False])

    def test_attempts_are_renumbered_by_position(self):
        evaluator, _ = create_evaluator([attempts_response([0.1, 0.2, 0.3], numbers=[2, 2, 7])])
        parameters = SimulationParameters(problem_statement="Should I move?")
        evaluation = evaluator.evaluate(parameters)
        self.assertEqual([attempt.attempt_number for attempt in evaluation.attempts], [1, 2, 3])

    def test_zero_attempts(self):
        evaluator, _ = create_evaluator([json.dumps({"attempts": []})])
        parameters = SimulationParameters(problem_statement="Should I move?")
        with self.assertRaises(GenerationFailure) as context:
            evaluator.evaluate(parameters)
        self.assertIn("zero attempts", str(context.exception))

    def test_more_attempts_than_requested(self):
        evaluator, _ = create_evaluator([attempts_response([0.1, 0.2, 0.3])])
        parameters = SimulationParameters(problem_statement="Should I move?", max_attempts=2)
        with self.assertRaises(GenerationFailure):
            evaluator.evaluate(parameters)

    def test_coherence_out_of_range_is_rejected(self):
        evaluator, _ = create_evaluator([attempts_response([1.5])])
        parameters = SimulationParameters(problem_statement="Should I move?")
        with self.assertRaises(GenerationFailure):
            evaluator.evaluate(parameters)

    def test_malformed_response(self):
        evaluator, _ = create_evaluator(["I'm sorry, I can't help with that."])
        parameters = SimulationParameters(problem_statement="Should I move?")
        with self.assertRaises(GenerationFailure):
            evaluator.evaluate(parameters)

    def test_unreachable_llm(self):
        evaluator, _ = create_evaluator(["raise:Connection refused"])
        parameters = SimulationParameters(problem_statement="Should I move?")
        with self.assertRaises(GenerationFailure):
            evaluator.evaluate(parameters)

    def test_intelligence_level_only_changes_the_prompt(self):
        response = attempts_response([0.4, 0.8])
        evaluator1, _ = create_evaluator([response])
        evaluator5, _ = create_evaluator([response])
        parameters1 = SimulationParameters(problem_statement="Should I move?", intelligence_level=1)
        parameters5 = SimulationParameters(problem_statement="Should I move?", intelligence_level=5)

        evaluation1 = evaluator1.evaluate(parameters1)
        evaluation5 = evaluator5.evaluate(parameters5)

        self.assertIn(JUSTIFICATION_DEPTH[1], evaluation1.user_prompt)
        self.assertIn(JUSTIFICATION_DEPTH[5], evaluation5.user_prompt)
        self.assertEqual(evaluation1.attempts, evaluation5.attempts)

    def test_user_prompt_contains_the_parameters(self):
        parameters = SimulationParameters(problem_statement="Should I buy a boat?", max_attempts=7, coherence_threshold=0.65)
        user_prompt = AttemptEvaluator.format_user_prompt(parameters)
        self.assertIn("Should I buy a boat?", user_prompt)
        self.assertIn("Maximum number of attempts: 7", user_prompt)
        self.assertIn("Coherence threshold: 0.65", user_prompt)

    def test_records_are_immutable(self):
        record = AttemptRecord(attempt_number=1, coherence=0.5, reversible=True, safe=True, justification="x", success=False)
        with self.assertRaises(Exception):
            record.coherence = 0.9

    def test_to_dict(self):
        evaluator, _ = create_evaluator([attempts_response([0.7])])
        parameters = SimulationParameters(problem_statement="Should I move?")
        evaluation = evaluator.evaluate(parameters)
        d = evaluation.to_dict(include_metadata=False, include_system_prompt=False, include_user_prompt=False)
        self.assertEqual(d, {
            "attempt_results": [{
                "attempt_number": 1,
                "coherence": 0.7,
                "reversible": True,
                "safe": True,
                "justification": "Justification for attempt 1.",
                "success": True,
            }]
        })

if __name__ == '__main__':
    unittest.main()
