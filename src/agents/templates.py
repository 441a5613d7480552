"""Prompt template system for narrative generation, with built-in and file-based templates."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Optional, Union

import yaml


TEMPLATE_EXTENSIONS = (".yaml", ".yml", ".json", ".txt")


class TemplateFormat(Enum):
    """Supported template formats."""
    STRING = "string"
    YAML = "yaml"
    JSON = "json"


@dataclass
class PromptVariable:
    """Represents a variable in a prompt template."""
    name: str
    description: str
    required: bool = True
    default_value: Optional[Any] = None


@dataclass
class PromptTemplate:
    """Represents a prompt template with variables and metadata."""
    name: str
    template: str
    description: str = ""
    variables: List[PromptVariable] = field(default_factory=list)
    format: TemplateFormat = TemplateFormat.STRING
    version: str = "1.0"

    def render(self, **kwargs) -> str:
        """Render the template with provided variables."""
        required_vars = {var.name for var in self.variables if var.required}
        missing_required = required_vars - set(kwargs.keys())
        if missing_required:
            raise ValueError(f"Missing required variables: {sorted(missing_required)}")

        render_vars = kwargs.copy()
        for var in self.variables:
            if var.name not in render_vars and var.default_value is not None:
                render_vars[var.name] = var.default_value

        try:
            return Template(self.template).substitute(render_vars)
        except KeyError as e:
            raise ValueError(f"Template rendering failed: missing variable {e}")


class TemplateLoader(ABC):
    """Abstract base class for template loaders."""

    @abstractmethod
    async def load_template(self, template_name: str) -> PromptTemplate:
        """Load a template by name."""
        pass

    @abstractmethod
    async def list_templates(self) -> List[str]:
        """List all available template names."""
        pass


class FileTemplateLoader(TemplateLoader):
    """Load prompt overrides from a directory of .yaml/.json/.txt files."""

    def __init__(self, templates_dir: Union[str, Path]):
        self.templates_dir = Path(templates_dir)
        if not self.templates_dir.is_dir():
            raise FileNotFoundError(f"Templates directory not found: {self.templates_dir}")

    async def load_template(self, template_name: str) -> PromptTemplate:
        for ext in TEMPLATE_EXTENSIONS:
            template_path = self.templates_dir / f"{template_name}{ext}"
            if template_path.exists():
                return self._load_from_file(template_path)

        raise FileNotFoundError(f"Template '{template_name}' not found in {self.templates_dir}")

    async def list_templates(self) -> List[str]:
        templates = set()
        for ext in TEMPLATE_EXTENSIONS:
            for template_path in self.templates_dir.glob(f"*{ext}"):
                templates.add(template_path.stem)
        return sorted(templates)

    def _load_from_file(self, template_path: Path) -> PromptTemplate:
        content = template_path.read_text(encoding="utf-8")
        name = template_path.stem

        if template_path.suffix in (".yaml", ".yml"):
            return self._from_mapping(name, yaml.safe_load(content), TemplateFormat.YAML)
        if template_path.suffix == ".json":
            return self._from_mapping(name, json.loads(content), TemplateFormat.JSON)
        return PromptTemplate(
            name=name,
            template=content,
            description=f"Plain text template: {name}",
            format=TemplateFormat.STRING
        )

    def _from_mapping(self, name: str, data: Dict[str, Any], fmt: TemplateFormat) -> PromptTemplate:
        if not isinstance(data, dict) or "template" not in data:
            raise ValueError(f"Template file for '{name}' must define a 'template' key")

        variables = [PromptVariable(**var_data) for var_data in data.get("variables", [])]
        return PromptTemplate(
            name=name,
            template=data["template"],
            description=data.get("description", ""),
            variables=variables,
            format=fmt,
            version=str(data.get("version", "1.0"))
        )


class InMemoryTemplateLoader(TemplateLoader):
    """In-memory template loader for built-in and test templates."""

    def __init__(self):
        self.templates: Dict[str, PromptTemplate] = {}

    def add_template(self, template: PromptTemplate):
        self.templates[template.name] = template

    async def load_template(self, template_name: str) -> PromptTemplate:
        if template_name not in self.templates:
            raise KeyError(f"Template '{template_name}' not found")
        return self.templates[template_name]

    async def list_templates(self) -> List[str]:
        return list(self.templates.keys())


SCHOOL_INSIGHTS_TEMPLATE = PromptTemplate(
    name="school_insights",
    template="""Analyze this school well-being survey JSON: $summary_json.
Compare to National Benchmarks (Anxiety $anxiety_benchmark%, Pressure $pressure_benchmark%, Support $support_benchmark%).
Return ONLY valid JSON with exactly 3 text fields:
- "executive_summary": A 2-3 sentence overview of the school's student well-being status.
- "strengths": Key positive findings and areas where the school performs well.
- "intervention": Recommended interventions and action items for improvement.
Do not include any markdown formatting or code blocks, just raw JSON.""",
    description="Narrative summary of one school's well-being survey metrics",
    variables=[
        PromptVariable("summary_json", "JSON-encoded school summary payload"),
        PromptVariable("anxiety_benchmark", "National % answering Often/Always on the anxiety question", False, 81),
        PromptVariable("pressure_benchmark", "National % answering Often/Always on the pressure question", False, 66),
        PromptVariable("support_benchmark", "National % answering Often/Always on the support question", False, 28),
    ]
)


class TemplateManager:
    """Template lookup across loaders, with caching."""

    def __init__(self, default_loader: Optional[TemplateLoader] = None):
        self.loaders: Dict[str, TemplateLoader] = {}
        self.template_cache: Dict[str, PromptTemplate] = {}
        self.default_loader = default_loader or InMemoryTemplateLoader()

        if isinstance(self.default_loader, InMemoryTemplateLoader):
            self.default_loader.add_template(SCHOOL_INSIGHTS_TEMPLATE)

    def add_loader(self, name: str, loader: TemplateLoader):
        self.loaders[name] = loader

    async def get_template(self, template_name: str, loader_name: Optional[str] = None) -> PromptTemplate:
        """Get a template by name, with caching."""
        cache_key = f"{loader_name or 'default'}:{template_name}"

        if cache_key in self.template_cache:
            return self.template_cache[cache_key]

        loader = self.loaders.get(loader_name) if loader_name else self.default_loader
        if not loader:
            raise ValueError(f"Loader '{loader_name}' not found")

        template = await loader.load_template(template_name)
        self.template_cache[cache_key] = template
        return template

    async def render_template(
        self,
        template_name: str,
        variables: Dict[str, Any],
        loader_name: Optional[str] = None
    ) -> str:
        template = await self.get_template(template_name, loader_name)
        return template.render(**variables)


_global_template_manager: Optional[TemplateManager] = None


def get_template_manager() -> TemplateManager:
    """Get the global template manager instance."""
    global _global_template_manager
    if _global_template_manager is None:
        _global_template_manager = TemplateManager()
    return _global_template_manager

