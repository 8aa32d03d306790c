"""
Task roadmap repair.

``repair_roadmap`` runs on every roadmap, whether it came from the model or
not. Task IDs are renumbered globally, only the first task is active, and any
missing field is backfilled so the client never sees a partial task.
"""

from typing import Any, Dict, List, Optional, Tuple

from projecthub_ai.constants import (
    DEFAULT_LINK_LABEL,
    DEFAULT_LINK_PLACEHOLDER,
    LINK_LABELS,
    LINK_PLACEHOLDERS,
    LinkType,
    TaskStatus,
    TaskType,
)
from projecthub_ai.generation.models import ArtifactConfig, Milestone, RoadmapTask
from projecthub_ai.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LEARNING_POINTS = ["Hands-on practice", "Problem solving"]
DEFAULT_TASK_ESTIMATE = "1 hour"


def default_milestones() -> List[Dict[str, Any]]:
    """Three-milestone roadmap used when the model returns nothing usable."""
    return [
        {
            "milestoneId": 1,
            "name": "Project Setup & Configuration",
            "estimatedDays": 1,
            "status": "pending",
            "tasks": [
                {
                    "title": "Create GitHub Repository",
                    "description": (
                        "Create a new GitHub repository for your project. Initialize it with a "
                        "README file and a .gitignore suited to your tech stack."
                    ),
                    "type": "setup",
                    "artifactConfig": {
                        "linkType": "github-repo",
                        "required": True,
                        "label": "GitHub Repository URL",
                        "placeholder": "https://github.com/username/project-name",
                        "helpText": "Paste your newly created repository URL",
                    },
                    "learningPoints": ["Git basics", "Repository setup", "Version control"],
                    "resources": ["https://docs.github.com/en/get-started"],
                    "estimatedTime": "15 mins",
                },
                {
                    "title": "Setup Project Structure",
                    "description": (
                        "Create the basic folder structure, initialize package management and "
                        "commit the skeleton to your repository."
                    ),
                    "type": "setup",
                    "artifactConfig": {
                        "linkType": "github-commit",
                        "required": True,
                        "label": "Commit URL",
                        "placeholder": "https://github.com/username/repo/commit/abc123",
                    },
                    "learningPoints": ["Project organization", "NPM initialization"],
                    "resources": ["https://docs.npmjs.com/"],
                    "estimatedTime": "20 mins",
                },
            ],
        },
        {
            "milestoneId": 2,
            "name": "Core Development",
            "estimatedDays": 7,
            "status": "pending",
            "tasks": [
                {
                    "title": "Implement Core Features",
                    "description": (
                        "Build the main features of your application one at a time. Commit "
                        "after each working feature and open a pull request for review."
                    ),
                    "type": "code",
                    "artifactConfig": {
                        "linkType": "github-commit",
                        "required": True,
                        "label": "Commit/PR URL",
                        "placeholder": "https://github.com/username/repo/commit/abc123",
                    },
                    "learningPoints": ["Feature development", "Best practices"],
                    "resources": [],
                    "estimatedTime": "4 hours",
                },
            ],
        },
        {
            "milestoneId": 3,
            "name": "Testing & Deployment",
            "estimatedDays": 2,
            "status": "pending",
            "tasks": [
                {
                    "title": "Deploy Application",
                    "description": (
                        "Deploy your application to a hosting platform. Vercel or Netlify work "
                        "well for frontends and Render for backends."
                    ),
                    "type": "deployment",
                    "artifactConfig": {
                        "linkType": "deployed-url",
                        "required": True,
                        "label": "Live Application URL",
                        "placeholder": "https://your-app.vercel.app or https://your-app.onrender.com",
                    },
                    "learningPoints": ["Cloud deployment", "CI/CD basics", "Platform selection"],
                    "resources": [
                        "https://vercel.com/docs",
                        "https://render.com/docs",
                        "https://docs.netlify.com/",
                    ],
                    "estimatedTime": "30 mins",
                },
            ],
        },
    ]


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


def _link_type(value: Any) -> Optional[LinkType]:
    try:
        return LinkType(value)
    except ValueError:
        return None


def _task_type(value: Any) -> TaskType:
    try:
        return TaskType(value)
    except ValueError:
        return TaskType.CODE


def _artifact(raw: Any, link_type: LinkType, *, required: bool, keep_text: bool = True) -> ArtifactConfig:
    raw = raw if isinstance(raw, dict) else {}
    label = _text(raw.get("label")) if keep_text else None
    placeholder = _text(raw.get("placeholder")) if keep_text else None

    return ArtifactConfig(
        link_type=link_type,
        required=required,
        label=label or LINK_LABELS.get(link_type, DEFAULT_LINK_LABEL),
        placeholder=placeholder or LINK_PLACEHOLDERS.get(link_type, DEFAULT_LINK_PLACEHOLDER),
        help_text=_text(raw.get("helpText", raw.get("help_text")))
    )


def repair_artifact(raw: Any, task_type: TaskType, is_first: bool) -> ArtifactConfig:
    """
    Resolve the primary artifact for a task.

    The first task always collects the repository URL. Other tasks keep a
    valid declared link type, otherwise deployment tasks collect a live URL
    and everything else a commit URL.
    """
    raw = raw if isinstance(raw, dict) else {}
    declared = _link_type(raw.get("linkType", raw.get("link_type")))

    if is_first:
        return _artifact(raw, LinkType.GITHUB_REPO, required=True, keep_text=declared is LinkType.GITHUB_REPO)

    if declared is not None:
        return _artifact(raw, declared, required=True)

    fallback = LinkType.DEPLOYED_URL if task_type is TaskType.DEPLOYMENT else LinkType.GITHUB_COMMIT
    return _artifact(raw, fallback, required=True, keep_text=False)


def repair_secondary(raw: Any) -> Optional[ArtifactConfig]:
    """Keep an optional second artifact only when its link type is valid."""
    if not isinstance(raw, dict):
        return None
    declared = _link_type(raw.get("linkType", raw.get("link_type")))
    if declared is None:
        return None
    required = raw.get("required")
    return _artifact(raw, declared, required=required if isinstance(required, bool) else False)


def repair_task(raw: Dict[str, Any], task_id: int, order: int) -> RoadmapTask:
    """Backfill one task; ``task_id`` is its global position starting at 1."""
    is_first = task_id == 1
    task_type = _task_type(raw.get("type"))

    return RoadmapTask(
        task_id=task_id,
        title=_text(raw.get("title")) or f"Task {task_id}",
        description=_text(raw.get("description")) or "Complete this task to progress your project.",
        type=task_type,
        order=order,
        status=TaskStatus.ACTIVE if is_first else TaskStatus.LOCKED,
        artifact_config=repair_artifact(raw.get("artifactConfig", raw.get("artifact_config")), task_type, is_first),
        learning_points=_strings(raw.get("learningPoints", raw.get("learning_points"))) or list(DEFAULT_LEARNING_POINTS),
        resources=_strings(raw.get("resources")),
        estimated_time=_text(raw.get("estimatedTime", raw.get("estimated_time"))) or DEFAULT_TASK_ESTIMATE,
        secondary_artifact=repair_secondary(raw.get("secondaryArtifact", raw.get("secondary_artifact")))
    )


def _estimated_days(value: Any) -> int:
    if isinstance(value, bool):
        return 3
    if isinstance(value, (int, float)) and value > 0:
        return int(value)
    return 3


def _raw_milestones(raw: Any) -> List[Dict[str, Any]]:
    if isinstance(raw, dict):
        raw = raw.get("milestones")
    if not isinstance(raw, list):
        return []
    return [m for m in raw if isinstance(m, dict)]


def _count_tasks(milestones: List[Dict[str, Any]]) -> int:
    return sum(
        len([t for t in m.get("tasks") or [] if isinstance(t, dict)])
        for m in milestones
        if isinstance(m.get("tasks"), list)
    )


def repair_roadmap(raw: Any) -> Tuple[List[Milestone], Dict[str, Any]]:
    """
    Normalise a roadmap.

    Args:
        raw: Parsed model JSON (an object with ``milestones`` or the list itself),
            or None when the output was unusable

    Returns:
        Tuple of repaired milestones and repair statistics
    """
    milestones = _raw_milestones(raw)
    used_default = _count_tasks(milestones) == 0
    if used_default:
        milestones = default_milestones()

    repaired: List[Milestone] = []
    next_id = 1

    for m_index, raw_milestone in enumerate(milestones, start=1):
        raw_tasks = raw_milestone.get("tasks")
        tasks: List[RoadmapTask] = []
        for order, raw_task in enumerate(
            (t for t in raw_tasks if isinstance(t, dict)) if isinstance(raw_tasks, list) else [],
            start=1
        ):
            tasks.append(repair_task(raw_task, next_id, order))
            next_id += 1

        status = raw_milestone.get("status")
        repaired.append(Milestone(
            milestone_id=m_index,
            name=_text(raw_milestone.get("name")) or f"Milestone {m_index}",
            estimated_days=_estimated_days(raw_milestone.get("estimatedDays", raw_milestone.get("estimated_days"))),
            status=status if isinstance(status, str) and status else "pending",
            tasks=tasks
        ))

    stats = {"usedDefault": used_default, "milestones": len(repaired), "tasks": next_id - 1}
    logger.info(f"Roadmap repaired with {next_id - 1} tasks", extra=stats)
    return repaired, stats
