"""
An LLM with predefined responses, standing in for a real model in tests.

Responses are handed out in order, and the sequence repeats once exhausted.
A response of the form "raise:message" raises an exception with that message instead.

PROMPT> python -m decisionsim.llm_util.response_mockllm
"""
from typing import Any, Sequence
from llama_index.core.llms import MockLLM, ChatResponse, ChatMessage, MessageRole
import itertools

class ResponseMockLLM(MockLLM):
    def __init__(self, responses: list[str], **kwargs):
        responses = responses or ["Mock response"]
        max_tokens = max(len(response) for response in responses)
        super().__init__(max_tokens=max_tokens, **kwargs)
        object.__setattr__(self, 'responses', responses)
        object.__setattr__(self, 'response_cycle', itertools.cycle(responses))
        object.__setattr__(self, 'call_count', 0)

    def _next_response(self) -> str:
        object.__setattr__(self, 'call_count', self.call_count + 1)
        response_text = next(self.response_cycle)
        if response_text.startswith("raise:"):
            raise Exception(response_text.split(":", 1)[1])
        return response_text

    def chat(self, messages: Sequence[ChatMessage], **kwargs: Any) -> ChatResponse:
        assistant_message = ChatMessage(
            role=MessageRole.ASSISTANT,
            content=self._next_response()
        )
        return ChatResponse(message=assistant_message)

    def _generate_text(self, length: int) -> str:
        return self._next_response()

if __name__ == "__main__":
    llm = ResponseMockLLM(
        responses=['{"decision": "YES"}', "raise:capability unreachable"]
    )
    print(llm.complete("Decide.").text)
    try:
        llm.complete("Decide again.")
    except Exception as e:
        print(f"Raised: {e}")
    print(f"call_count: {llm.call_count}")
