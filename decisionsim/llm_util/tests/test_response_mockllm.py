import unittest
from llama_index.core.llms import ChatMessage, MessageRole, ChatResponse, CompletionResponse
from decisionsim.llm_util.response_mockllm import ResponseMockLLM

class TestResponseMockLLM(unittest.TestCase):
    def test_complete_function(self):
        responses = ["or not to be", "123 123 123 123 123", "abc"]
        llm = ResponseMockLLM(responses=responses)

        response = llm.complete("To be ")

        self.assertIsInstance(response, CompletionResponse)
        self.assertEqual(response.text, responses[0])
        self.assertEqual(llm.call_count, 1)

    def test_chat_function(self):
        responses = ["Hello there!", "How can I help?"]
        llm = ResponseMockLLM(responses=responses)
        message = ChatMessage(role=MessageRole.USER, content="Hello")

        response1 = llm.chat([message])
        response2 = llm.chat([message])
        response3 = llm.chat([message])

        self.assertIsInstance(response1, ChatResponse)
        self.assertEqual(response1.message.content, "Hello there!")
        self.assertEqual(response2.message.content, "How can I help?")
        self.assertEqual(response3.message.content, "Hello there!")

    def test_raise(self):
        llm = ResponseMockLLM(responses=["raise:capability unreachable"])
        with self.assertRaises(Exception) as context:
            llm.complete("Hi")
        self.assertEqual(str(context.exception), "capability unreachable")

if __name__ == '__main__':
    unittest.main()
