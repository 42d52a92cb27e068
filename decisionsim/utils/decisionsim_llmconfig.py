"""
Load DecisionSim's llm_config.json file, containing LLM configurations.

The DECISIONSIM_LLM_CONFIG_JSON environment variable may hold the entire config inline,
in which case it takes precedence over the file on disk.

PROMPT> python -m decisionsim.utils.decisionsim_llmconfig
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import json
import os
from decisionsim.utils.decisionsim_config import DecisionSimConfig
from decisionsim.utils.decisionsim_dotenv import DecisionSimDotEnv
import logging

logger = logging.getLogger(__name__)

@dataclass
class DecisionSimLLMConfig:
    llm_config_json_path: Optional[Path]
    llm_config_dict_raw: dict[str, Any]
    llm_config_dict: dict[str, Any]
    dotenv_dict: dict[str, str]

    @classmethod
    def load(cls) -> 'DecisionSimLLMConfig':
        config = DecisionSimConfig.load()
        config.raise_if_llm_config_not_found()
        decisionsim_dotenv = DecisionSimDotEnv.load()

        env_override = os.environ.get("DECISIONSIM_LLM_CONFIG_JSON")
        llm_config_dict_raw: Optional[Dict[str, Any]] = None

        if env_override:
            try:
                llm_config_dict_raw = json.loads(env_override)
                logger.info("Loaded llm_config.json from DECISIONSIM_LLM_CONFIG_JSON environment override")
            except json.JSONDecodeError as exc:
                logger.error("Failed to parse DECISIONSIM_LLM_CONFIG_JSON override. Falling back to filesystem copy.", exc_info=exc)

        if llm_config_dict_raw is None:
            llm_config_dict_raw = cls.load_llm_config(config.llm_config_json_path)

        llm_config_dict = cls.substitute_env_vars(llm_config_dict_raw, decisionsim_dotenv.dotenv_dict)

        return cls(
            llm_config_json_path=config.llm_config_json_path,
            llm_config_dict_raw=llm_config_dict_raw,
            llm_config_dict=llm_config_dict,
            dotenv_dict=decisionsim_dotenv.dotenv_dict,
        )

    @classmethod
    def load_llm_config(cls, llm_config_json_path: Optional[Path]) -> Dict[str, Any]:
        """Loads the configuration from a JSON file."""
        if llm_config_json_path is None:
            logger.error("llm_config.json path is unknown. Using an empty dictionary.")
            return {}
        try:
            with open(llm_config_json_path, "r") as f:
                return json.load(f)
        except FileNotFoundError:
            logger.error(f"llm_config.json not found at {llm_config_json_path}. Using an empty dictionary.")
            return {}
        except json.JSONDecodeError as e:
            raise ValueError(f"Error decoding JSON from {llm_config_json_path}: {e}")

    @classmethod
    def substitute_env_vars(cls, config: Dict[str, Any], env_vars: Dict[str, str]) -> Dict[str, Any]:
        """Recursively substitutes environment variables in the configuration."""

        def replace_value(value: Any) -> Any:
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                var_name = value[2:-1]
                if var_name in env_vars:
                    return env_vars[var_name]
                logger.warning(f"Environment variable '{var_name}' not found.")
            return value

        def process_item(item):
            if isinstance(item, dict):
                return {k: process_item(v) for k, v in item.items()}
            elif isinstance(item, list):
                return [process_item(i) for i in item]
            else:
                return replace_value(item)

        return process_item(config)

    def __repr__(self):
        return f"DecisionSimLLMConfig(llm_config_json_path={self.llm_config_json_path!r}, llm_config_dict.keys()={self.llm_config_dict.keys()!r})"

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    llm_config = DecisionSimLLMConfig.load()
    print(llm_config)
    print(f"\nllm_config.llm_config_dict_raw: {llm_config.llm_config_dict_raw!r}")
