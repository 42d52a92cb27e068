"""
Invoke exactly one LLM per run.

The executor is given an ordered list of candidate models. It walks the list only while
models fail to be created (bad config, missing API key, unknown class). The first model that
is created gets the call, and whatever that call does is final: a failing or non-conforming
response raises LLMCallError, and no other model is asked.
"""
import time
import logging
import inspect
from typing import Any, Callable, Optional, List, Union
from dataclasses import dataclass
from llama_index.core.llms.llm import LLM
from decisionsim.llm_factory import get_llm

logger = logging.getLogger(__name__)

class ExecutionAbortedError(RuntimeError):
    """Raised when the host asks to stop, via the should_stop_callback."""
    pass

class LLMCreationError(RuntimeError):
    """None of the candidate models could be created."""
    pass

class LLMCallError(RuntimeError):
    """The single call to the created model failed."""
    pass

class LLMModelBase:
    """A candidate model. Creating it may fail, and failing to create it is the only reason to try the next candidate."""
    def create_llm(self) -> LLM:
        raise NotImplementedError

@dataclass(frozen=True)
class LLMModelFromName(LLMModelBase):
    """A model looked up by its id in llm_config.json."""
    name: str

    def create_llm(self) -> LLM:
        return get_llm(self.name)

    @classmethod
    def from_names(cls, names: list[str]) -> list[LLMModelBase]:
        return [cls(name=name) for name in names]

@dataclass(frozen=True)
class LLMModelWithInstance(LLMModelBase):
    """An already created model, such as a ResponseMockLLM."""
    llm: LLM

    def create_llm(self) -> LLM:
        return self.llm

    def __repr__(self) -> str:
        return f"LLMModelWithInstance(llm={self.llm.class_name()})"

    @classmethod
    def from_instances(cls, llms: list[LLM]) -> list[LLMModelBase]:
        return [cls(llm=llm) for llm in llms]

@dataclass
class LLMAttempt:
    """One step of a run: creating a candidate model, or calling the created one."""
    stage: str
    llm_model: LLMModelBase
    success: bool
    duration: float
    result: Optional[Any] = None
    exception: Optional[Exception] = None

@dataclass
class ShouldStopCallbackParameters:
    last_attempt: LLMAttempt
    total_duration: float
    attempt_index: int
    total_candidates: int

class LLMExecutor:
    """
    Create the first model that can be created, then call it once.

    `attempts` holds the steps of the most recent run, so use one executor per concurrent caller.
    """
    def __init__(self, llm_models: list[LLMModelBase], should_stop_callback: Optional[Callable[[ShouldStopCallbackParameters], bool]] = None):
        if not llm_models:
            raise ValueError("No LLMs provided")
        if should_stop_callback is not None and not callable(should_stop_callback):
            raise TypeError("should_stop_callback must be a function that returns a boolean")

        self.llm_models = llm_models
        self.should_stop_callback = should_stop_callback
        self.attempts: List[LLMAttempt] = []

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def call_count(self) -> int:
        """Number of calls made to a model in the most recent run. Either 0 or 1."""
        return sum(1 for attempt in self.attempts if attempt.stage == 'execute')

    def run(self, execute_function: Callable[[LLM], Any]):
        self._validate_execute_function(execute_function)

        self.attempts = []
        start_time = time.perf_counter()

        llm, llm_model = self._create_first_available_llm(start_time)

        step_start_time = time.perf_counter()
        try:
            result = execute_function(llm)
        except Exception as e:
            duration = time.perf_counter() - step_start_time
            logger.warning(f"Call with LLM {llm_model!r} failed after {duration:.2f} seconds: {e!r}")
            attempt = LLMAttempt(stage='execute', llm_model=llm_model, success=False, duration=duration, exception=e)
            self.attempts.append(attempt)
            self._raise_if_stop_requested(attempt, start_time)
            raise LLMCallError(f"Call with LLM {llm_model!r} failed: {e}") from e

        duration = time.perf_counter() - step_start_time
        logger.info(f"Call with LLM {llm_model!r} succeeded. Duration: {duration:.2f} seconds")
        attempt = LLMAttempt(stage='execute', llm_model=llm_model, success=True, duration=duration, result=result)
        self.attempts.append(attempt)
        self._raise_if_stop_requested(attempt, start_time)
        return result

    def _create_first_available_llm(self, start_time: float) -> tuple[LLM, LLMModelBase]:
        for llm_model in self.llm_models:
            step_start_time = time.perf_counter()
            try:
                llm = llm_model.create_llm()
            except Exception as e:
                duration = time.perf_counter() - step_start_time
                logger.warning(f"Cannot create LLM {llm_model!r}: {e!r}")
                attempt = LLMAttempt(stage='create', llm_model=llm_model, success=False, duration=duration, exception=e)
                self.attempts.append(attempt)
                self._raise_if_stop_requested(attempt, start_time)
                continue
            duration = time.perf_counter() - step_start_time
            self.attempts.append(LLMAttempt(stage='create', llm_model=llm_model, success=True, duration=duration))
            return llm, llm_model

        rows = [f" - {attempt.llm_model!r}: {attempt.exception!r}" for attempt in self.attempts]
        summary = "\n".join(rows)
        raise LLMCreationError(f"None of the {len(self.llm_models)} LLMs could be created:\n{summary}") from self.attempts[-1].exception

    def _validate_execute_function(self, execute_function: Callable[[LLM], Any]) -> None:
        """The execute_function must take a single parameter, annotated as LLM if annotated at all."""
        if not callable(execute_function):
            raise TypeError("execute_function must be a function that takes a LLM parameter")

        params = list(inspect.signature(execute_function).parameters.values())
        if len(params) != 1:
            raise TypeError("execute_function must be a function that takes a single parameter")

        annotation = params[0].annotation
        if annotation == inspect.Parameter.empty or annotation == LLM:
            return
        if getattr(annotation, '__origin__', None) is Union and LLM in annotation.__args__:
            return
        raise TypeError("execute_function must take a single parameter of type LLM, but got some other type")

    def _raise_if_stop_requested(self, last_attempt: LLMAttempt, start_time: float) -> None:
        if self.should_stop_callback is None:
            return

        parameters = ShouldStopCallbackParameters(
            last_attempt=last_attempt,
            total_duration=time.perf_counter() - start_time,
            attempt_index=len(self.attempts) - 1,
            total_candidates=len(self.llm_models),
        )
        if self.should_stop_callback(parameters):
            logger.warning(f"Stop requested after step {parameters.attempt_index} ({last_attempt.stage}).")
            raise ExecutionAbortedError(f"Execution aborted by callback after step {parameters.attempt_index}")
