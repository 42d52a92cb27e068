"""
Locate DecisionSim's config files, like .env and llm_config.json.

Finds config files by checking the following locations in order:
1. The directory specified by the DECISIONSIM_CONFIG_PATH environment variable. It must be an absolute path.
2. The current working directory (CWD).
3. The DecisionSim project root directory (assumed to be two levels above this file's location).

Usage: without any DECISIONSIM_CONFIG_PATH environment variable.
PROMPT> python -m decisionsim.utils.decisionsim_config

Usage: with a DECISIONSIM_CONFIG_PATH environment variable set.
PROMPT> DECISIONSIM_CONFIG_PATH='/absolute/path/to/config_dir' python -m decisionsim.utils.decisionsim_config
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, ClassVar
import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)

class ConfigNameEnum(str, Enum):
    DOTENV = ".env"
    LLM_CONFIG_JSON = "llm_config.json"

class DecisionSimConfigError(Exception):
    """Raised when there is an error with the configuration."""
    pass

@dataclass
class DecisionSimConfig:
    """
    Holds the resolved paths to DecisionSim configuration files and the env var value used.

    Attributes:
        decisionsim_config_path: Optional[Path] - The directory specified by DECISIONSIM_CONFIG_PATH
        dotenv_path: Optional[Path] - Path to the .env file
        llm_config_json_path: Optional[Path] - Path to the llm_config.json file
    """
    decisionsim_config_path: Optional[Path]
    dotenv_path: Optional[Path]
    llm_config_json_path: Optional[Path]

    _instance: ClassVar[Optional['DecisionSimConfig']] = None

    def raise_if_llm_config_not_found(self) -> None:
        """
        The .env file is optional, since secrets can be passed via the process environment.
        The llm_config.json is required, unless it's provided via DECISIONSIM_LLM_CONFIG_JSON.

        :raises: DecisionSimConfigError if llm_config.json cannot be found.
        """
        if self.llm_config_json_path is not None:
            return
        if os.environ.get("DECISIONSIM_LLM_CONFIG_JSON"):
            logger.debug("llm_config.json not found on disk, but DECISIONSIM_LLM_CONFIG_JSON is set")
            return
        msg = f"Required configuration file not found: {ConfigNameEnum.LLM_CONFIG_JSON.value}"
        logger.error(msg)
        raise DecisionSimConfigError(msg)

    @classmethod
    def load(cls) -> 'DecisionSimConfig':
        """
        Loads configuration paths by searching predefined locations.
        Implements a singleton pattern to avoid repeated filesystem scans.

        :return: An instance of DecisionSimConfig with resolved paths.
        """
        if cls._instance is not None:
            return cls._instance

        logger.debug("DecisionSimConfig.load() creating a new instance...")
        decisionsim_config_path = cls.resolve_decisionsim_config_path()
        dotenv_path = cls.find_file_in_search_order(ConfigNameEnum.DOTENV.value, decisionsim_config_path)
        llm_config_json_path = cls.find_file_in_search_order(ConfigNameEnum.LLM_CONFIG_JSON.value, decisionsim_config_path)

        cls._instance = cls(
            decisionsim_config_path=decisionsim_config_path,
            dotenv_path=dotenv_path,
            llm_config_json_path=llm_config_json_path,
        )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the cached instance, so the next load() scans the filesystem again."""
        cls._instance = None

    @classmethod
    def resolve_decisionsim_config_path(cls) -> Optional[Path]:
        """
        Resolves and validates the DECISIONSIM_CONFIG_PATH environment variable.
        It's expected to be an absolute path to a directory.

        :return: A Path object if valid, otherwise None.
        """
        path_str = os.environ.get("DECISIONSIM_CONFIG_PATH")
        if path_str is None:
            logger.debug("DECISIONSIM_CONFIG_PATH is not set")
            return None

        path_obj = Path(path_str)
        if not path_obj.is_absolute():
            logger.error(f"DECISIONSIM_CONFIG_PATH must be an absolute path: {path_obj!r}")
            return None
        if not path_obj.is_dir():
            logger.error(f"DECISIONSIM_CONFIG_PATH must be a directory: {path_obj!r}")
            return None
        logger.debug(f"Using DECISIONSIM_CONFIG_PATH: {path_obj!r}")
        return path_obj

    @classmethod
    def find_file_in_search_order(cls, filename: str, decisionsim_config_path: Optional[Path]) -> Optional[Path]:
        """
        Finds a specific configuration file based on a precedence of locations.

        Search order:
        1. Directory from validated DECISIONSIM_CONFIG_PATH (if provided and valid).
        2. Current Working Directory (CWD).
        3. DecisionSim project root.

        :param filename: The name of the file to find (e.g., ".env").
        :param decisionsim_config_path: The validated absolute directory path from DECISIONSIM_CONFIG_PATH.
        :return: The Path to the file if found, otherwise None.
        """
        if decisionsim_config_path is not None:
            config_file_path = decisionsim_config_path / filename
            if config_file_path.is_file():
                logger.debug(f"Found {filename!r} at config_file_path: {config_file_path!r}")
                return config_file_path

        cwd_file_path = Path.cwd() / filename
        if cwd_file_path.is_file():
            logger.debug(f"Found {filename!r} at cwd_file_path: {cwd_file_path!r}")
            return cwd_file_path

        root_file_path = Path(__file__).parent.parent.parent / filename
        if root_file_path.is_file():
            logger.debug(f"Found {filename!r} at root_file_path: {root_file_path!r}")
            return root_file_path

        logger.warning(f"{filename!r} not found in any of the search locations (ENV_VAR, CWD, Project Root).")
        return None

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    config = DecisionSimConfig.load()
    print(f"config: {config!r}")
    config.raise_if_llm_config_not_found()
