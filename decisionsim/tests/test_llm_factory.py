import unittest
from decisionsim.llm_factory import get_llm, get_llm_names_by_priority, get_default_llm_name, is_valid_llm_name
from decisionsim.utils.decisionsim_llmconfig import DecisionSimLLMConfig

def create_llm_config(llm_config_dict: dict, dotenv_dict: dict = None) -> DecisionSimLLMConfig:
    return DecisionSimLLMConfig(
        llm_config_json_path=None,
        llm_config_dict_raw=llm_config_dict,
        llm_config_dict=llm_config_dict,
        dotenv_dict=dotenv_dict or {},
    )

LLM_CONFIG_DICT = {
    "model-c": {"class": "NoSuchClass", "arguments": {}, "priority": 3},
    "model-a": {"class": "NoSuchClass", "arguments": {}, "priority": 1},
    "model-b": {"class": "NoSuchClass", "arguments": {}, "priority": 2},
    "model-without-priority": {"class": "NoSuchClass", "arguments": {}},
}

class TestLLMFactory(unittest.TestCase):
    def test_names_by_priority(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT)
        self.assertEqual(get_llm_names_by_priority(llm_config), ["model-a", "model-b", "model-c"])

    def test_is_valid_llm_name(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT)
        self.assertTrue(is_valid_llm_name("model-without-priority", llm_config))
        self.assertFalse(is_valid_llm_name("model-z", llm_config))

    def test_unknown_llm_name(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT)
        with self.assertRaises(ValueError) as context:
            get_llm("model-z", llm_config)
        self.assertIn("not found in llm_config.json", str(context.exception))

    def test_unknown_llm_class(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT)
        with self.assertRaises(ValueError) as context:
            get_llm("model-b", llm_config)
        self.assertIn("Invalid LLM class name", str(context.exception))

    def test_no_models_configured(self):
        llm_config = create_llm_config({})
        with self.assertRaises(ValueError) as context:
            get_llm(None, llm_config)
        self.assertIn("No LLM models configured", str(context.exception))

    def test_default_llm_name_is_first_by_priority(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT)
        self.assertEqual(get_default_llm_name(llm_config), "model-a")

    def test_default_llm_name_from_env(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT, {"DEFAULT_LLM": "model-c"})
        self.assertEqual(get_default_llm_name(llm_config), "model-c")

    def test_default_llm_from_env(self):
        llm_config = create_llm_config(LLM_CONFIG_DICT, {"DEFAULT_LLM": "model-missing"})
        with self.assertRaises(ValueError) as context:
            get_llm(None, llm_config)
        self.assertIn("'model-missing'", str(context.exception))

if __name__ == '__main__':
    unittest.main()
