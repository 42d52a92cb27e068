"""
Create llama_index LLM instances from the entries in llm_config.json.

Each entry names the llama_index class to instantiate and its constructor arguments:

    "ollama-llama3.1": {
        "class": "Ollama",
        "arguments": {"model": "llama3.1:latest", "request_timeout": 120.0},
        "priority": 1
    }

PROMPT> python -m decisionsim.llm_factory
"""
import logging
from functools import lru_cache
from typing import Optional, Any
from llama_index.core.llms.llm import LLM
from llama_index.llms.ollama import Ollama
from llama_index.llms.openai import OpenAI
from llama_index.llms.openrouter import OpenRouter
from decisionsim.utils.decisionsim_llmconfig import DecisionSimLLMConfig

# You can disable this if you don't want to send app info to OpenRouter.
SEND_APP_INFO_TO_OPENROUTER = True

logger = logging.getLogger(__name__)

__all__ = ["get_llm", "get_llm_names_by_priority", "get_default_llm_name", "is_valid_llm_name"]

LLM_CLASSES: dict[str, type[LLM]] = {
    "Ollama": Ollama,
    "OpenAI": OpenAI,
    "OpenRouter": OpenRouter,
}


@lru_cache(maxsize=1)
def _load_llm_config() -> DecisionSimLLMConfig:
    return DecisionSimLLMConfig.load()


def get_llm_names_by_priority(llm_config: Optional[DecisionSimLLMConfig] = None) -> list[str]:
    """
    Returns a list of LLM names sorted by priority.
    Lowest values comes first. Entries without a priority are left out.
    """
    llm_config = llm_config or _load_llm_config()
    configs = [(name, config) for name, config in llm_config.llm_config_dict.items()
               if config.get("priority") is not None]
    configs.sort(key=lambda x: x[1]["priority"])
    return [name for name, _ in configs]


def get_default_llm_name(llm_config: Optional[DecisionSimLLMConfig] = None) -> str:
    """
    DEFAULT_LLM from .env if set, otherwise the model with the lowest priority value.
    """
    llm_config = llm_config or _load_llm_config()
    llm_name = llm_config.dotenv_dict.get("DEFAULT_LLM")
    if llm_name:
        return llm_name
    llm_names = get_llm_names_by_priority(llm_config)
    if not llm_names:
        raise ValueError("No LLM models configured")
    return llm_names[0]


def is_valid_llm_name(llm_name: str, llm_config: Optional[DecisionSimLLMConfig] = None) -> bool:
    llm_config = llm_config or _load_llm_config()
    return llm_name in llm_config.llm_config_dict


def get_llm(llm_name: Optional[str] = None, llm_config: Optional[DecisionSimLLMConfig] = None, **kwargs: Any) -> LLM:
    """
    Returns an LLM instance based on the llm_config.json file.

    :param llm_name: The name/key of the LLM to instantiate.
                     If None, falls back to DEFAULT_LLM in .env, then to the model with the lowest priority value.
    :param llm_config: The loaded config. If None, it's loaded from disk.
    :param kwargs: Additional keyword arguments to override default model parameters.
    :return: An instance of a LlamaIndex LLM class.
    """
    llm_config = llm_config or _load_llm_config()

    if not llm_name:
        llm_name = get_default_llm_name(llm_config)

    if not is_valid_llm_name(llm_name, llm_config):
        logger.error(f"Cannot create LLM, the llm_name {llm_name!r} is not found in llm_config.json.")
        raise ValueError(f"Cannot create LLM, the llm_name {llm_name!r} is not found in llm_config.json.")

    config = llm_config.llm_config_dict[llm_name]
    class_name = config.get("class")
    arguments = dict(config.get("arguments", {}))

    # Override with any kwargs passed to get_llm()
    arguments.update(kwargs)

    if class_name == "OpenRouter" and SEND_APP_INFO_TO_OPENROUTER:
        # https://openrouter.ai/docs/api-reference/overview#headers
        arguments_extra = {
            "additional_kwargs": {
                "extra_headers": {
                    "X-Title": "DecisionSim"
                }
            }
        }
        arguments.update(arguments_extra)

    llm_class = LLM_CLASSES.get(class_name)
    if llm_class is None:
        raise ValueError(f"Invalid LLM class name in llm_config.json: {class_name!r}")
    try:
        return llm_class(**arguments)
    except TypeError as e:
        raise ValueError(f"Error instantiating {class_name} with arguments: {e}") from e


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    llm_names = get_llm_names_by_priority()
    print("LLM names by priority:")
    for llm_name in llm_names:
        print(f"- {llm_name}")

    try:
        llm = get_llm()
        print(f"Successfully loaded LLM: {llm.__class__.__name__}")
        print(llm.complete("Hello, how are you?"))
    except ValueError as e:
        print(f"Error: {e}")
