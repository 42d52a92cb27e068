import unittest
from pydantic import BaseModel, Field
from decisionsim.llm_util.llm_executor import LLMExecutor, LLMModelWithInstance
from decisionsim.llm_util.response_mockllm import ResponseMockLLM
from decisionsim.llm_util.structured_generation import StructuredGenerationClient
from decisionsim.simulation.errors import GenerationFailure

class Score(BaseModel):
    label: str = Field(description="A short label.")
    value: float = Field(ge=0.0, le=1.0, description="A number between 0 and 1.")

def create_client(llms: list[ResponseMockLLM]) -> StructuredGenerationClient:
    return StructuredGenerationClient(LLMExecutor(llm_models=LLMModelWithInstance.from_instances(llms)))

class TestStructuredGenerationClient(unittest.TestCase):
    def test_valid_response(self):
        # Arrange
        llm = ResponseMockLLM(responses=['{"label": "good", "value": 0.8}'])
        client = create_client([llm])

        # Act
        result = client.generate("Score the input.", "Some input", Score)

        # Assert
        self.assertIsInstance(result.response, Score)
        self.assertEqual(result.response.label, "good")
        self.assertEqual(result.response.value, 0.8)
        self.assertEqual(result.metadata["llm_classname"], llm.class_name())
        self.assertIn("duration", result.metadata)
        self.assertGreater(result.metadata["response_byte_count"], 0)

    def test_json_surrounded_by_text(self):
        llm = ResponseMockLLM(responses=['Here you go: {"label": "ok", "value": 0.5} Hope it helps.'])
        result = create_client([llm]).generate("Score the input.", "Some input", Score)
        self.assertEqual(result.response.label, "ok")

    def test_response_violating_the_schema(self):
        llm = ResponseMockLLM(responses=['{"label": "bad", "value": 7}'])
        with self.assertRaises(GenerationFailure) as context:
            create_client([llm]).generate("Score the input.", "Some input", Score)
        self.assertIn("Score", str(context.exception))
        self.assertIsNotNone(context.exception.__cause__)

    def test_response_without_json(self):
        llm = ResponseMockLLM(responses=["no json here"])
        with self.assertRaises(GenerationFailure):
            create_client([llm]).generate("Score the input.", "Some input", Score)

    def test_llm_raises(self):
        llm = ResponseMockLLM(responses=["raise:Connection refused"])
        with self.assertRaises(GenerationFailure):
            create_client([llm]).generate("Score the input.", "Some input", Score)

    def test_malformed_response_is_not_retried_with_the_next_llm(self):
        # Arrange
        bad_llm = ResponseMockLLM(responses=["not json"])
        good_llm = ResponseMockLLM(responses=['{"label": "second", "value": 0.1}'])
        client = create_client([bad_llm, good_llm])

        # Act
        with self.assertRaises(GenerationFailure):
            client.generate("Score the input.", "Some input", Score)

        # Assert
        self.assertEqual(bad_llm.call_count, 1)
        self.assertEqual(good_llm.call_count, 0)

    def test_failure_is_logged_without_traceback(self):
        llm = ResponseMockLLM(responses=["raise:Connection refused"])
        with self.assertLogs("decisionsim.llm_util.structured_generation", level="ERROR") as logs:
            with self.assertRaises(GenerationFailure):
                create_client([llm]).generate("Score the input.", "Some input", Score)
        self.assertEqual(len(logs.records), 1)
        self.assertIsNone(logs.records[0].exc_info)

    def test_invalid_arguments(self):
        llm = ResponseMockLLM(responses=['{"label": "x", "value": 0.1}'])
        client = create_client([llm])
        with self.assertRaises(ValueError):
            client.generate("", "Some input", Score)
        with self.assertRaises(ValueError):
            client.generate("Score the input.", "", Score)
        with self.assertRaises(ValueError):
            StructuredGenerationClient("not an executor")
        self.assertEqual(llm.call_count, 0)

if __name__ == '__main__':
    unittest.main()
