"""
Load DecisionSim's .env file, containing secrets such as API keys, like: OPENROUTER_API_KEY.

Environment variables of the running process take priority over the .env file,
so secrets injected by a container or CI runner override what's on disk.

PROMPT> python -m decisionsim.utils.decisionsim_dotenv
"""
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional
from dotenv import dotenv_values
import logging
from decisionsim.utils.decisionsim_config import DecisionSimConfig

logger = logging.getLogger(__name__)

@dataclass
class DecisionSimDotEnv:
    dotenv_path: Optional[Path]
    dotenv_dict: dict[str, str]

    @classmethod
    def load(cls) -> 'DecisionSimDotEnv':
        config = DecisionSimConfig.load()
        return cls.load_from_path(config.dotenv_path)

    @classmethod
    def load_from_path(cls, dotenv_path: Optional[Path]) -> 'DecisionSimDotEnv':
        file_dict: dict[str, str] = {}
        if dotenv_path is not None and dotenv_path.is_file():
            env_before = os.environ.copy()
            file_dict = {key: value for key, value in dotenv_values(dotenv_path=dotenv_path).items() if value is not None}
            if env_before != os.environ:
                logger.error("DecisionSimDotEnv.load() The dotenv_values() modified the environment variables. Expected it to be read-only.")
            logger.debug(f"Loaded {len(file_dict)} variables from {dotenv_path!r}")
        else:
            logger.info("No .env file found - using environment variables only")

        dotenv_dict = {**file_dict, **os.environ}
        return cls(
            dotenv_path=dotenv_path,
            dotenv_dict=dotenv_dict
        )

    def get(self, key: str) -> Optional[str]:
        return self.dotenv_dict.get(key)

    def __repr__(self):
        return f"DecisionSimDotEnv(dotenv_path={self.dotenv_path!r}, number of keys={len(self.dotenv_dict)})"

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    dotenv = DecisionSimDotEnv.load()
    print(dotenv)
    print(f"DEFAULT_LLM: {dotenv.get('DEFAULT_LLM')!r}")
