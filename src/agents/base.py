"""Abstract base agent class with async LLM calls, template rendering, and execution tracking."""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field

from utils.llm import LLMClient, LLMError
from agents.templates import TemplateManager, get_template_manager


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class AgentStatus(Enum):
    """Agent execution status."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AgentMetrics:
    """Metrics for agent execution."""
    total_llm_calls: int = 0
    total_llm_tokens: int = 0
    total_latency_ms: float = 0.0
    error_count: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def execution_time_ms(self) -> float:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return 0.0

    @property
    def avg_latency_ms(self) -> float:
        if self.total_llm_calls > 0:
            return self.total_latency_ms / self.total_llm_calls
        return 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_llm_calls": self.total_llm_calls,
            "total_llm_tokens": self.total_llm_tokens,
            "total_latency_ms": self.total_latency_ms,
            "avg_latency_ms": self.avg_latency_ms,
            "error_count": self.error_count,
            "execution_time_ms": self.execution_time_ms
        }


@dataclass
class AgentConfig:
    """Configuration for agent behavior."""
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1024
    llm_retry_count: int = 3
    template_loader: Optional[str] = None
    enable_metrics: bool = True
    log_level: str = "INFO"


class AgentResult(BaseModel):
    """Standard result format for agent operations."""
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    agent_id: str
    execution_time_ms: float
    metrics: Optional[Dict[str, Any]] = None


class BaseAgent(ABC):
    """
    Abstract base class for LLM-backed agents.

    Provides:
    - Async LLM calls through an injected LLMClient
    - Template-based prompt rendering
    - Status and metrics tracking around execute()
    """

    def __init__(
        self,
        agent_id: Optional[str] = None,
        llm_client: Optional[LLMClient] = None,
        config: Optional[AgentConfig] = None,
        template_manager: Optional[TemplateManager] = None
    ):
        self.agent_id = agent_id or f"{self.__class__.__name__}_{uuid.uuid4().hex[:8]}"
        self.llm_client = llm_client
        self.config = config or AgentConfig()
        self.template_manager = template_manager or get_template_manager()

        self.status = AgentStatus.IDLE
        self.metrics = AgentMetrics() if self.config.enable_metrics else None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))

    @property
    @abstractmethod
    def agent_type(self) -> str:
        """Return the type/name of this agent."""
        pass

    @abstractmethod
    async def execute(self, **kwargs) -> AgentResult:
        """Main execution method for the agent."""
        pass

    async def llm_call(
        self,
        prompt: str,
        response_format: Optional[Type[T]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Union[Any, T]:
        """
        Make a single LLM call using the agent's configured sampling settings.

        Args:
            prompt: The prompt to send to the LLM
            response_format: Optional Pydantic model for structured output
            metadata: Additional metadata for the call

        Returns:
            Parsed response (if response_format provided) or raw LLMResponse
        """
        if not self.llm_client:
            raise LLMError("No LLM client configured")

        start_time = time.time()

        try:
            result = await self.llm_client.call(
                prompt=prompt,
                response_format=response_format,
                temperature=self.config.llm_temperature,
                max_tokens=self.config.llm_max_tokens,
                retry_count=self.config.llm_retry_count,
                metadata={
                    "agent_id": self.agent_id,
                    "agent_type": self.agent_type,
                    **(metadata or {})
                }
            )
        except Exception as e:
            if self.metrics:
                self.metrics.error_count += 1
            self.logger.error(f"LLM call failed: {e}", extra={
                "agent_id": self.agent_id,
                "prompt_length": len(prompt),
                "error_type": type(e).__name__
            })
            raise

        if self.metrics:
            self.metrics.total_llm_calls += 1
            self.metrics.total_latency_ms += (time.time() - start_time) * 1000
            token_usage = getattr(result, 'token_usage', None)
            if token_usage:
                self.metrics.total_llm_tokens += token_usage.get('input_tokens', 0) + token_usage.get('output_tokens', 0)

        return result

    async def render_prompt(self, template_name: str, variables: Optional[Dict[str, Any]] = None) -> str:
        """Render a prompt template from the agent's template manager."""
        try:
            return await self.template_manager.render_template(
                template_name=template_name,
                variables=variables or {},
                loader_name=self.config.template_loader
            )
        except Exception as e:
            self.logger.error(f"Template rendering failed: {e}", extra={
                "agent_id": self.agent_id,
                "template_name": template_name
            })
            raise

    async def execute_with_tracking(self, **kwargs) -> AgentResult:
        """
        Execute the agent with automatic status and metrics tracking.

        Exceptions from execute() are converted into a failed AgentResult.
        """
        self.status = AgentStatus.RUNNING
        if self.metrics:
            self.metrics.start_time = time.time()
        self.logger.info(f"Starting execution for {self.agent_type} agent", extra={"agent_id": self.agent_id})

        try:
            result = await self.execute(**kwargs)
        except Exception as e:
            self._finish(success=False, error=e)
            return AgentResult(
                success=False,
                error=str(e),
                agent_id=self.agent_id,
                execution_time_ms=self.metrics.execution_time_ms if self.metrics else 0.0,
                metadata={
                    "error_type": type(e).__name__,
                    "agent_type": self.agent_type
                },
                metrics=self.metrics.as_dict() if self.metrics else None
            )

        self._finish(success=result.success)
        return result

    def _finish(self, success: bool, error: Optional[Exception] = None):
        self.status = AgentStatus.COMPLETED if success else AgentStatus.FAILED
        if self.metrics:
            self.metrics.end_time = time.time()

        extra_data = {"agent_id": self.agent_id}
        if error:
            extra_data["error"] = str(error)
        if self.metrics:
            extra_data.update(self.metrics.as_dict())

        self.logger.log(
            logging.INFO if success else logging.ERROR,
            f"Execution {'completed' if success else 'failed'} for {self.agent_type} agent",
            extra=extra_data
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(agent_id='{self.agent_id}', status={self.status.value})"
