"""
Entry point for the presentation layer, and a command line interface.

Invalid parameters are rejected with ValidationError before any LLM is contacted.
Every other failure is reported as SimulationFailure.

PROMPT> python -m decisionsim.simulation.run_simulation --problem "Should I move to Copenhagen?" --max-attempts 5 --coherence-threshold 0.6
"""
import sys
import json
import asyncio
import logging
import argparse
from typing import Any, Mapping, Optional, Union
from decisionsim.llm_factory import get_default_llm_name
from decisionsim.llm_util.llm_executor import LLMExecutor, LLMModelBase, LLMModelFromName
from decisionsim.llm_util.structured_generation import StructuredGenerationClient
from decisionsim.simulation.decision_synthesizer import ResponseStyle
from decisionsim.simulation.errors import SimulationFailure, ValidationError
from decisionsim.utils.decisionsim_config import DecisionSimConfigError
from decisionsim.simulation.simulation_orchestrator import SimulationOrchestrator, SimulationResult
from decisionsim.simulation.simulation_parameters import (
    SimulationParameters,
    MAX_ATTEMPTS_DEFAULT,
    COHERENCE_THRESHOLD_DEFAULT,
    INTELLIGENCE_LEVEL_DEFAULT,
)

logger = logging.getLogger(__name__)

def create_orchestrator(llm_models: list[LLMModelBase], response_style: ResponseStyle = ResponseStyle.plain) -> SimulationOrchestrator:
    """A fresh executor per orchestrator, so concurrent runs share nothing."""
    llm_executor = LLMExecutor(llm_models=llm_models)
    return SimulationOrchestrator(StructuredGenerationClient(llm_executor), response_style)

async def run_simulation(
    parameters: Union[SimulationParameters, Mapping[str, Any]],
    llm_models: list[LLMModelBase],
    response_style: ResponseStyle = ResponseStyle.plain,
) -> SimulationResult:
    """
    Run one simulation without blocking the event loop.

    :param parameters: Either SimulationParameters, or a mapping as submitted by the input form.
    :raises ValidationError: if the parameters are invalid. No LLM is contacted.
    :raises SimulationFailure: if the simulation fails.
    """
    if not isinstance(parameters, SimulationParameters):
        parameters = SimulationParameters.from_dict(parameters)
    orchestrator = create_orchestrator(llm_models, response_style)
    return await asyncio.to_thread(orchestrator.run, parameters)

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate attempts at resolving a problem, and recommend YES or NO.")
    parser.add_argument("--problem", required=True, help="The problem or choice to consider.")
    parser.add_argument("--max-attempts", type=int, default=MAX_ATTEMPTS_DEFAULT, help="Maximum number of attempts to simulate (1-10).")
    parser.add_argument("--coherence-threshold", type=float, default=COHERENCE_THRESHOLD_DEFAULT, help="Minimum coherence for a successful attempt (0-1).")
    parser.add_argument("--intelligence-level", type=int, default=INTELLIGENCE_LEVEL_DEFAULT, help="Depth of the justifications (1-5).")
    parser.add_argument("--style", choices=[style.value for style in ResponseStyle], default=ResponseStyle.plain.value, help="Tone of the decision reason.")
    parser.add_argument("--llm", action="append", dest="llm_names", help="Name of an LLM in llm_config.json. Repeat to add fallbacks, used only when the preceding LLMs cannot be created. Default: DEFAULT_LLM, or the first by priority.")
    parser.add_argument("--output", help="Write the result as JSON to this file.")
    parser.add_argument("--markdown", help="Write the result as markdown to this file.")
    return parser.parse_args(argv)

def main(argv: Optional[list[str]] = None, llm_models: Optional[list[LLMModelBase]] = None) -> int:
    """
    Exit codes: 0 on success, 1 when the simulation fails or no LLM is configured, 2 for invalid parameters.

    :param llm_models: Models to use instead of the ones named by --llm. For hosts embedding the CLI.
    """
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    args = parse_args(argv)

    try:
        parameters = SimulationParameters(
            problem_statement=args.problem,
            max_attempts=args.max_attempts,
            coherence_threshold=args.coherence_threshold,
            intelligence_level=args.intelligence_level,
        )
    except ValidationError as e:
        print(f"Invalid parameters: {e}", file=sys.stderr)
        return 2

    if llm_models is None:
        try:
            llm_names = args.llm_names or [get_default_llm_name()]
        except (DecisionSimConfigError, ValueError) as e:
            print(f"Cannot resolve the LLM to use: {e}", file=sys.stderr)
            return 1
        llm_models = LLMModelFromName.from_names(llm_names)

    try:
        result = asyncio.run(run_simulation(parameters, llm_models, ResponseStyle(args.style)))
    except SimulationFailure as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.output:
        result.save_raw(args.output)
    if args.markdown:
        result.save_markdown(args.markdown)
    print(json.dumps(result.to_dict(include_metadata=False), indent=2))
    return 0

if __name__ == "__main__":
    sys.exit(main())
