"""
Data models for generated project guides, roadmaps and task help.

All models serialize with the camelCase keys the web client consumes
(``model_dump(by_alias=True)``) while accepting either spelling on input.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from projecthub_ai.constants import LinkType, TaskStatus, TaskType


class WireModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TechStack(WireModel):
    """Custom technology selection, one list per layer."""

    frontend: List[str] = Field(default_factory=list)
    backend: List[str] = Field(default_factory=list)
    database: List[str] = Field(default_factory=list)
    others: List[str] = Field(default_factory=list)


class ProjectSpec(WireModel):
    """What the learner wants to build."""

    project_name: str
    description: str = ""
    tech_stack: Union[str, TechStack] = ""
    complexity: str = "intermediate"
    features: List[str] = Field(default_factory=list)
    skill_level: str = "beginner"
    motivation: str = ""
    target_audience: Optional[str] = None

    @field_validator("tech_stack", mode="before")
    @classmethod
    def unwrap_predefined(cls, v: Any) -> Any:
        """A ``{"predefined": "MERN"}`` stack is the same as the bare string."""
        if isinstance(v, dict) and v.get("predefined"):
            return str(v["predefined"])
        if v is None:
            return ""
        return v

    def tech_stack_summary(self) -> str:
        """Flatten the stack into one line for prompts."""
        if isinstance(self.tech_stack, str):
            return self.tech_stack

        parts = []
        for label, items in (
            ("Frontend", self.tech_stack.frontend),
            ("Backend", self.tech_stack.backend),
            ("Database", self.tech_stack.database),
            ("Others", self.tech_stack.others),
        ):
            if items:
                parts.append(f"{label}: {', '.join(items)}")
        return " | ".join(parts)


class FileDoc(WireModel):
    """Learning notes for one file in the folder structure."""

    file_path: str
    purpose: str
    what_you_learn: List[str] = Field(default_factory=list)
    key_concepts: List[str] = Field(default_factory=list)
    estimated_time: str


class GuideDocument(WireModel):
    """A complete, repaired project guide."""

    readme: str
    folder_structure: Dict[str, Any]
    file_documentation: List[FileDoc]
    setup_instructions: str
    configuration_guide: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ArtifactConfig(WireModel):
    """What a learner submits to complete a task."""

    link_type: LinkType
    required: bool = True
    label: str
    placeholder: str
    help_text: Optional[str] = None


class RoadmapTask(WireModel):
    """One unit of work in a milestone."""

    task_id: int
    title: str
    description: str
    type: TaskType
    order: int
    status: TaskStatus
    artifact_config: ArtifactConfig
    learning_points: List[str]
    resources: List[str] = Field(default_factory=list)
    estimated_time: str
    secondary_artifact: Optional[ArtifactConfig] = None


class Milestone(WireModel):
    """A group of related roadmap tasks."""

    milestone_id: int
    name: str
    estimated_days: int = 3
    status: str = "pending"
    tasks: List[RoadmapTask] = Field(default_factory=list)


class TaskRoadmap(WireModel):
    """A complete, repaired task roadmap."""

    milestones: List[Milestone]
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def tasks(self) -> List[RoadmapTask]:
        """All tasks in milestone order."""
        return [task for milestone in self.milestones for task in milestone.tasks]


class HelpCommand(WireModel):
    description: str
    command: str


class HelpStep(WireModel):
    title: str
    description: str
    code: Optional[str] = None


class TaskHelp(WireModel):
    """Beginner-oriented commands and steps for one roadmap task."""

    commands: List[HelpCommand] = Field(default_factory=list)
    steps: List[HelpStep] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.commands or not self.steps
