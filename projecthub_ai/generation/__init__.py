"""Project guide, roadmap and task help generation."""

from .models import (
    ArtifactConfig,
    FileDoc,
    GuideDocument,
    HelpCommand,
    HelpStep,
    Milestone,
    ProjectSpec,
    RoadmapTask,
    TaskHelp,
    TaskRoadmap,
    TechStack,
)

__all__ = [
    "ArtifactConfig",
    "FileDoc",
    "GuideDocument",
    "HelpCommand",
    "HelpStep",
    "Milestone",
    "ProjectSpec",
    "RoadmapTask",
    "TaskHelp",
    "TaskRoadmap",
    "TechStack",
]
