"""
Structured generation: ask an LLM for a response that validates against a pydantic model.

This is the only place where the core talks to the generation capability. The instruction
becomes the system message, the input becomes the user message, and the declared
output schema is enforced via llama_index's structured LLM wrapper.
Whatever goes wrong (unreachable model, malformed JSON, schema violations) surfaces as GenerationFailure.

PROMPT> python -m decisionsim.llm_util.structured_generation
"""
import time
import logging
from math import ceil
from dataclasses import dataclass
from typing import Generic, Type, TypeVar
from pydantic import BaseModel
from llama_index.core.llms import ChatMessage, MessageRole
from llama_index.core.llms.llm import LLM
from decisionsim.llm_util.llm_executor import LLMExecutor, ExecutionAbortedError
from decisionsim.simulation.errors import GenerationFailure

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)

@dataclass
class StructuredGenerationResult(Generic[ResponseModel]):
    response: ResponseModel
    metadata: dict

class StructuredGenerationClient:
    def __init__(self, llm_executor: LLMExecutor):
        if not isinstance(llm_executor, LLMExecutor):
            raise ValueError("Invalid LLMExecutor instance.")
        self.llm_executor = llm_executor

    def generate(self, system_prompt: str, user_prompt: str, output_cls: Type[ResponseModel]) -> StructuredGenerationResult[ResponseModel]:
        """
        Make one structured generation request.

        :raises GenerationFailure: when no LLM could be created, or the one call made did not produce a response that validates against output_cls.
        """
        if not isinstance(system_prompt, str) or not system_prompt:
            raise ValueError("Invalid system_prompt.")
        if not isinstance(user_prompt, str) or not user_prompt:
            raise ValueError("Invalid user_prompt.")

        logger.debug(f"User Prompt:\n{user_prompt}")

        chat_message_list = [
            ChatMessage(
                role=MessageRole.SYSTEM,
                content=system_prompt,
            ),
            ChatMessage(
                role=MessageRole.USER,
                content=user_prompt,
            )
        ]

        def execute_function(llm: LLM) -> dict:
            sllm = llm.as_structured_llm(output_cls)
            start_time = time.perf_counter()
            chat_response = sllm.chat(chat_message_list)
            if not isinstance(chat_response.raw, output_cls):
                raise ValueError(f"Expected a {output_cls.__name__} response, got {type(chat_response.raw).__name__}.")
            end_time = time.perf_counter()

            metadata = dict(llm.metadata)
            metadata["llm_classname"] = llm.class_name()
            metadata["duration"] = int(ceil(end_time - start_time))
            metadata["response_byte_count"] = len(chat_response.message.content.encode('utf-8'))
            return {
                "response": chat_response.raw,
                "metadata": metadata,
            }

        try:
            result = self.llm_executor.run(execute_function)
        except ExecutionAbortedError:
            raise
        except Exception as e:
            logger.error(f"LLM chat interaction failed: {e!r}")
            raise GenerationFailure(f"Structured generation of {output_cls.__name__} failed.") from e

        metadata = result["metadata"]
        logger.info(f"LLM chat interaction completed in {metadata['duration']} seconds. Response byte count: {metadata['response_byte_count']}")
        return StructuredGenerationResult(response=result["response"], metadata=metadata)

if __name__ == "__main__":
    import json
    from pydantic import Field
    from decisionsim.llm_util.llm_executor import LLMModelWithInstance
    from decisionsim.llm_util.response_mockllm import ResponseMockLLM

    logging.basicConfig(level=logging.DEBUG)

    class Greeting(BaseModel):
        text: str = Field(description="A friendly greeting.")

    llm = ResponseMockLLM(responses=['{"text": "Hello there"}'])
    client = StructuredGenerationClient(LLMExecutor(llm_models=[LLMModelWithInstance(llm)]))
    result = client.generate("Greet the user.", "Hi", Greeting)
    print(json.dumps(result.response.model_dump(), indent=2))
    print(result.metadata)
