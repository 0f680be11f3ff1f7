"""End-to-end run: document -> endpoints -> schedule -> generated test blocks."""

import logging
import time
from dataclasses import dataclass, field

from api_test_orchestrator.config import GeneratorConfig
from api_test_orchestrator.generator.code import TestBlockRenderer, unique_identifier
from api_test_orchestrator.generator.executor import ConcurrentExecutor, GenerationClient
from api_test_orchestrator.generator.fallback import FallbackTemplateEngine
from api_test_orchestrator.generator.prompt import PromptBuilder
from api_test_orchestrator.generator.scheduler import Schedule, schedule
from api_test_orchestrator.generator.values import ValueSynthesizer
from api_test_orchestrator.llm import LlmClient
from api_test_orchestrator.parser.document import ApiDocument
from api_test_orchestrator.parser.swagger import analyze_endpoints, summarize_complexity

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    blocks: list[str] = field(default_factory=list)
    schedule: Schedule | None = None
    processed: int = 0
    failed: int = 0
    fallbacks: int = 0
    duration: float = 0.0

    @property
    def succeeded(self) -> int:
        return self.processed - self.failed


def plan(document: ApiDocument, synthesizer: ValueSynthesizer | None = None) -> Schedule:
    """Analyze the document and return the dispatch schedule."""
    endpoints = analyze_endpoints(document, synthesizer)
    average, distribution = summarize_complexity(endpoints)
    if endpoints:
        logger.info(
            "Average complexity %.2f, distribution %s",
            average,
            {level.value: count for level, count in distribution.items()},
        )
    return schedule(endpoints)


def run_pipeline(
    config: GeneratorConfig,
    client: GenerationClient | None = None,
    document: ApiDocument | None = None,
    synthesizer: ValueSynthesizer | None = None,
) -> RunReport:
    """Run the whole generation.

    Raises FatalRunError when the run aborts; the error carries the counters
    gathered up to that point.
    """
    started = time.monotonic()
    if document is None:
        if config.input_path is None:
            raise ValueError("input_path is required when no document is given")
        document = ApiDocument.from_file(config.input_path)

    synthesizer = synthesizer or ValueSynthesizer()
    run_schedule = plan(document, synthesizer)

    client = client or LlmClient(
        model=config.model,
        timeout_ms=config.timeout_ms,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
    executor = ConcurrentExecutor(
        client,
        config,
        prompt_builder=PromptBuilder(),
        fallback=FallbackTemplateEngine(synthesizer),
    )

    try:
        results = executor.run(run_schedule.order)
    finally:
        counters = executor.context.counters
        logger.info(
            "Processed %d/%d endpoints, %d failed, in %.2fs",
            counters.processed,
            len(run_schedule.order),
            counters.failed,
            time.monotonic() - started,
        )

    return RunReport(
        blocks=executor.context.output.blocks,
        schedule=run_schedule,
        processed=counters.processed,
        failed=counters.failed,
        fallbacks=sum(1 for r in results if r.used_fallback),
        duration=time.monotonic() - started,
    )


def render_fallback_suite(document: ApiDocument, synthesizer: ValueSynthesizer | None = None) -> list[str]:
    """Fallback blocks for every scheduled endpoint, without calling the LLM."""
    synthesizer = synthesizer or ValueSynthesizer()
    engine = FallbackTemplateEngine(synthesizer)
    renderer = TestBlockRenderer()
    blocks = []
    taken: set[str] = set()
    for endpoint in plan(document, synthesizer).order:
        identifier = unique_identifier(endpoint.operation_id, taken)
        blocks.append(renderer.render(endpoint, identifier, engine.render_body(endpoint), fallback=True))
    return blocks

