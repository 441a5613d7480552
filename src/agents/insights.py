"""
Insights agent for per-school narrative generation.

Turns the summary payload of one school's SchoolMetrics into three free-text
fields (executive summary, strengths, intervention) by prompting an LLM and
parsing the JSON object it returns. The agent is callable, so it can be
injected wherever an InsightsFetcher is expected.
"""

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from agents.base import AgentConfig, AgentResult, BaseAgent
from agents.templates import FileTemplateLoader, TemplateManager
from models import AIInsights, SchoolSummaryPayload
from utils.llm import LLMClient, LLMError


logger = logging.getLogger(__name__)

InsightsFetcher = Callable[[SchoolSummaryPayload], Awaitable[AIInsights]]

NATIONAL_BENCHMARKS = {
    "anxiety": 81,
    "pressure": 66,
    "support": 28,
}

INSIGHT_FIELDS = ("executive_summary", "strengths", "intervention")

CODE_FENCE_PATTERN = re.compile(r"```json|```")
JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


class InsightsParseError(LLMError):
    """Raised when the model's reply holds no usable JSON object."""
    pass


def _field_text(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(str(item) for item in value)
    return str(value)


def parse_insights(text: str) -> AIInsights:
    """
    Parse a model reply into AIInsights.

    Markdown code fences are stripped and the outermost {...} span is decoded.
    Missing or empty fields fall back to the AIInsights defaults.
    """
    clean_text = CODE_FENCE_PATTERN.sub("", text or "").strip()
    match = JSON_OBJECT_PATTERN.search(clean_text)
    if not match:
        raise InsightsParseError("Failed to parse AI response as JSON")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise InsightsParseError(f"Failed to parse AI response as JSON: {e}")

    if not isinstance(parsed, dict):
        raise InsightsParseError("AI response JSON is not an object")

    fields = {name: _field_text(parsed[name]) for name in INSIGHT_FIELDS if parsed.get(name)}
    return AIInsights(**fields)


class InsightsAgent(BaseAgent):
    """
    Agent that writes the narrative section of a school's well-being report.

    Responsibilities:
    - Render the school_insights prompt with the summary payload and benchmarks
    - Call the LLM once per school
    - Parse and default the three narrative fields
    """

    def __init__(
        self,
        llm_client: LLMClient,
        benchmarks: Dict[str, int] = None,
        **kwargs
    ):
        super().__init__(llm_client=llm_client, **kwargs)
        self.benchmarks = {**NATIONAL_BENCHMARKS, **(benchmarks or {})}

    @property
    def agent_type(self) -> str:
        return "InsightsAgent"

    async def build_prompt(self, payload: SchoolSummaryPayload) -> str:
        return await self.render_prompt(
            "school_insights",
            {
                "summary_json": json.dumps(payload.model_dump()),
                "anxiety_benchmark": self.benchmarks["anxiety"],
                "pressure_benchmark": self.benchmarks["pressure"],
                "support_benchmark": self.benchmarks["support"],
            }
        )

    async def generate(self, payload: SchoolSummaryPayload) -> AIInsights:
        """Generate insights for one school, raising on LLM or parse failure."""
        prompt = await self.build_prompt(payload)
        response = await self.llm_call(prompt, metadata={"school": payload.school})
        insights = parse_insights(getattr(response, "content", ""))
        self.logger.info(f"Generated insights for {payload.school}")
        return insights

    async def __call__(self, payload: SchoolSummaryPayload) -> AIInsights:
        """Fetch insights with status tracking, raising LLMError on failure."""
        result = await self.execute_with_tracking(payload=payload)
        if not result.success:
            raise LLMError(result.error)
        return AIInsights(**result.data)

    async def execute(self, payload: SchoolSummaryPayload) -> AgentResult:
        """
        Main execution method for a single school.

        Args:
            payload: Summary subset of the school's metrics

        Returns:
            AgentResult whose data holds the AIInsights fields
        """
        start_time = time.time()
        insights = await self.generate(payload)
        return AgentResult(
            success=True,
            data=insights.model_dump(),
            agent_id=self.agent_id,
            execution_time_ms=(time.time() - start_time) * 1000,
            metadata={"school": payload.school},
            metrics=self.metrics.as_dict() if self.metrics else None
        )


def create_insights_agent(
    llm_client: LLMClient,
    temperature: float = 0.7,
    max_tokens: int = 1024,
    templates_dir: Optional[Union[str, Path]] = None
) -> InsightsAgent:
    """Build an InsightsAgent with the sampling settings used for report narratives.

    When templates_dir is given, prompts are read from that directory instead
    of the built-in templates.
    """
    template_manager = TemplateManager()
    template_loader = None
    if templates_dir is not None:
        template_manager.add_loader("file", FileTemplateLoader(templates_dir))
        template_loader = "file"

    return InsightsAgent(
        llm_client=llm_client,
        template_manager=template_manager,
        config=AgentConfig(
            llm_temperature=temperature,
            llm_max_tokens=max_tokens,
            template_loader=template_loader
        )
    )
