"""
Project guide repair.

Model output for a guide is treated as untrusted. ``repair_guide`` always
returns a complete ``GuideDocument``: readme and setup text are normalised to
markdown, a folder structure is guaranteed, and every file in that structure
gets exactly one documentation entry.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from projecthub_ai.constants import DEFAULT_FILE_ESTIMATE, PROJECT_ROOT_KEY
from projecthub_ai.generation.models import FileDoc, GuideDocument, ProjectSpec
from projecthub_ai.logger import get_logger
from projecthub_ai.utils.helpers import natural_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class Markdown:
    text: str


@dataclass(frozen=True)
class StructuredSections:
    sections: Dict[str, Any]


@dataclass(frozen=True)
class Missing:
    pass


SectionContent = Union[Markdown, StructuredSections, Missing]


def parse_section(value: Any) -> SectionContent:
    """Classify a readme or setup value returned by the model."""
    if isinstance(value, str) and value.strip():
        return Markdown(value)
    if isinstance(value, dict):
        return StructuredSections(value)
    return Missing()


# (accepted keys, heading) in render order
README_SECTIONS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("projectOverview", "project_overview", "overview"), "📝 Project Overview"),
    (("learningObjectives", "learning_objectives"), "🎯 Learning Objectives"),
    (("techStackDetails", "tech_stack_details", "techStack"), "🛠️ Tech Stack"),
    (("keyFeaturesList", "key_features", "keyFeatures"), "🚀 Key Features"),
    (("gettingStartedGuide", "getting_started", "gettingStarted"), "🏁 Getting Started"),
    (("projectStructureOverview", "project_structure", "projectStructure"), "📁 Project Structure"),
)

DEFAULT_SETUP = (
    "## Setup Instructions\n\n"
    "1. Clone repository\n"
    "2. Install dependencies\n"
    "3. Configure environment\n"
    "4. Run development servers"
)

DEFAULT_SETUP_STEPS = ["Clone repository", "Install dependencies", "Run development servers"]


def _render_value(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(f"- {item}" for item in value)
    if isinstance(value, dict):
        return "\n".join(f"- **{key}**: {item}" for key, item in value.items())
    return str(value)


def _first_present(sections: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = sections.get(key)
        if value:
            return value
    return None


def render_readme(content: SectionContent, spec: ProjectSpec) -> str:
    """Produce README markdown from whatever shape the model returned."""
    if isinstance(content, Markdown):
        return content.text

    if isinstance(content, Missing):
        return f"# {spec.project_name}\n\n## Overview\n{spec.description}"

    parts = [f"# {spec.project_name}\n"]
    for keys, heading in README_SECTIONS:
        value = _first_present(content.sections, keys)
        if value is None and heading.endswith("Project Overview"):
            value = spec.description
        if value is None:
            continue
        parts.append(f"## {heading}\n{_render_value(value)}\n")
    return "\n".join(parts)


def render_setup(content: SectionContent) -> str:
    """Produce setup markdown; structured input contributes its ``step*`` keys in order."""
    if isinstance(content, Markdown):
        return content.text

    if isinstance(content, Missing):
        return DEFAULT_SETUP

    step_keys = sorted((k for k in content.sections if str(k).lower().startswith("step")), key=natural_key)
    steps = [str(content.sections[k]) for k in step_keys] or DEFAULT_SETUP_STEPS
    lines = [f"{i}. {step}" for i, step in enumerate(steps, start=1)]
    return "## Setup Instructions\n\n" + "\n".join(lines)


def default_folder_structure(project_name: str) -> Dict[str, Any]:
    """Full-stack layout used when the model returns no usable structure."""
    return {
        project_name or "project": {
            "README.md": "",
            ".gitignore": "",
            "package.json": "",
            ".env.example": "",
            "frontend": {
                "package.json": "",
                "vite.config.js": "",
                "index.html": "",
                "eslint.config.js": "",
                "postcss.config.js": "",
                "tailwind.config.js": "",
                "src": {
                    "main.jsx": "",
                    "App.jsx": "",
                    "index.css": "",
                    "App.css": "",
                    "components": {
                        "Navbar.jsx": "",
                        "Footer.jsx": "",
                        "ProtectedRoute.jsx": "",
                        "ui": {"Button.jsx": "", "Card.jsx": "", "Input.jsx": ""},
                    },
                    "pages": {"Home.jsx": "", "Login.jsx": "", "Register.jsx": "", "Dashboard.jsx": ""},
                    "hooks": {"useAuth.js": ""},
                    "store": {"authStore.js": "", "themeStore.js": ""},
                    "lib": {"api.js": "", "utils.js": ""},
                    "assets": {},
                },
                "public": {"favicon.ico": ""},
            },
            "backend": {
                "package.json": "",
                "server.js": "",
                ".env.example": "",
                "config": {"database.js": "", "config.js": ""},
                "controllers": {"authController.js": "", "userController.js": ""},
                "models": {"User.js": ""},
                "routes": {"authRoutes.js": "", "userRoutes.js": ""},
                "middleware": {"auth.js": "", "errorHandler.js": ""},
                "services": {},
                "utils": {"helpers.js": ""},
            },
        }
    }


def enumerate_leaf_paths(structure: Dict[str, Any]) -> List[str]:
    """
    List every file path in a folder structure.

    Folders are mappings; ``""``, ``None`` or any other scalar marks a file.
    A top-level ``project-root`` wrapper is not part of the paths. Lists of
    names inside a folder are treated as files in that folder.
    """
    root = structure.get(PROJECT_ROOT_KEY)
    if not isinstance(root, dict):
        root = structure

    paths: List[str] = []

    def walk(node: Dict[str, Any], prefix: str) -> None:
        for key, value in node.items():
            path = f"{prefix}/{key}" if prefix else str(key)
            if isinstance(value, dict):
                walk(value, path)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, dict):
                        walk(item, path)
                    elif isinstance(item, str) and item:
                        paths.append(f"{path}/{item}")
            else:
                paths.append(path)

    walk(root, "")
    return list(dict.fromkeys(paths))


def normalize_doc_path(path: str) -> str:
    """Make a model-supplied path comparable with enumerated leaf paths."""
    cleaned = path.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    cleaned = cleaned.lstrip("/")
    if cleaned.startswith(PROJECT_ROOT_KEY + "/"):
        cleaned = cleaned[len(PROJECT_ROOT_KEY) + 1:]
    return cleaned


FILE_PURPOSES = {
    "package.json": "Defines project dependencies, scripts, and metadata for npm/yarn package management.",
    ".gitignore": "Specifies files and directories that should be ignored by Git version control.",
    ".env.example": "Template for environment variables needed to run the application.",
    "README.md": "Project documentation with setup instructions, features, and usage guidelines.",
    "vite.config.js": "Configuration file for Vite build tool and development server.",
    "tailwind.config.js": "Tailwind CSS configuration for customizing design system.",
    "eslint.config.js": "ESLint configuration for code quality and style checking.",
    "index.html": "Main HTML entry point for the web application.",
    "server.js": "Node.js server entry point for backend application.",
    "requirements.txt": "Lists the Python packages the project depends on.",
}

EXTENSION_PURPOSES = {
    "jsx": "React component file that renders UI elements.",
    "js": "JavaScript module containing application logic and functionality.",
    "css": "Stylesheet for styling UI components.",
    "json": "JSON configuration or data file.",
    "ts": "TypeScript module with type-safe code.",
    "tsx": "TypeScript React component file.",
    "py": "Python module containing application logic.",
    "md": "Markdown documentation file.",
    "html": "HTML page template.",
}

EXTENSION_LEARNINGS = {
    "jsx": ["React component structure", "JSX syntax", "Props and state management"],
    "js": ["JavaScript modules", "ES6+ features", "Code organization"],
    "css": ["CSS styling", "Responsive design", "Layout techniques"],
    "json": ["JSON data structure", "Configuration management"],
    "ts": ["Type annotations", "Interfaces", "Compile-time checks"],
    "tsx": ["Typed React components", "Props typing", "JSX syntax"],
    "py": ["Python modules", "Functions and classes", "Code organization"],
}

EXTENSION_CONCEPTS = {
    "jsx": ["Components", "JSX", "React"],
    "js": ["Modules", "Functions", "ES6"],
    "css": ["Styling", "Selectors", "Flexbox"],
    "json": ["JSON", "Configuration"],
    "ts": ["TypeScript", "Types", "Interfaces"],
    "tsx": ["TypeScript", "React", "Components"],
    "py": ["Python", "Modules", "Functions"],
}

PACKAGE_JSON_LEARNINGS = ["Managing project dependencies", "Defining npm scripts", "Versioning and metadata"]
GENERIC_LEARNINGS = ["File purpose and usage", "Best practices", "Integration with project"]
GENERIC_CONCEPTS = ["File Management", "Project Structure"]


def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def synthesize_doc(path: str) -> FileDoc:
    """Documentation entry derived from the file's name and extension."""
    file_name = path.rsplit("/", 1)[-1]
    ext = _extension(file_name)

    purpose = FILE_PURPOSES.get(file_name) or EXTENSION_PURPOSES.get(ext) or f"Project file for {file_name}."
    if file_name == "package.json":
        learnings = PACKAGE_JSON_LEARNINGS
    else:
        learnings = EXTENSION_LEARNINGS.get(ext, GENERIC_LEARNINGS)

    return FileDoc(
        file_path=path,
        purpose=purpose,
        what_you_learn=list(learnings),
        key_concepts=list(EXTENSION_CONCEPTS.get(ext, GENERIC_CONCEPTS)),
        estimated_time=DEFAULT_FILE_ESTIMATE
    )


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items = [str(item) for item in value if isinstance(item, (str, int, float)) and str(item).strip()]
    return items or None


def coerce_doc(raw: Dict[str, Any], path: str) -> FileDoc:
    """Build a FileDoc from a model entry, filling any gap from the synthesized entry."""
    fallback = synthesize_doc(path)
    purpose = raw.get("purpose")
    estimate = raw.get("estimatedTime", raw.get("estimated_time"))

    return FileDoc(
        file_path=path,
        purpose=purpose.strip() if isinstance(purpose, str) and purpose.strip() else fallback.purpose,
        what_you_learn=_string_list(raw.get("whatYouLearn", raw.get("what_you_learn"))) or fallback.what_you_learn,
        key_concepts=_string_list(raw.get("keyConcepts", raw.get("key_concepts"))) or fallback.key_concepts,
        estimated_time=estimate.strip() if isinstance(estimate, str) and estimate.strip() else fallback.estimated_time
    )


def reconcile_file_docs(leaf_paths: List[str], raw_docs: Any) -> Tuple[List[FileDoc], Dict[str, int]]:
    """
    Match model documentation to leaf paths.

    Returns one entry per leaf path, in leaf order. Entries for unknown paths
    and repeated entries for the same path are dropped.

    Returns:
        Tuple of the documentation list and repair counters
    """
    leaf_set = set(leaf_paths)
    matched: Dict[str, FileDoc] = {}
    dropped = 0

    for raw in raw_docs if isinstance(raw_docs, list) else []:
        if not isinstance(raw, dict):
            dropped += 1
            continue

        path = raw.get("filePath") or raw.get("path")
        if not isinstance(path, str):
            dropped += 1
            continue

        path = normalize_doc_path(path)
        if path not in leaf_set or path in matched:
            dropped += 1
            continue

        matched[path] = coerce_doc(raw, path)

    docs = [matched.get(path) or synthesize_doc(path) for path in leaf_paths]
    stats = {
        "fromModel": len(matched),
        "synthesized": len(leaf_paths) - len(matched),
        "dropped": dropped,
    }
    return docs, stats


def repair_guide(raw: Optional[Dict[str, Any]], spec: ProjectSpec, metadata: Optional[Dict[str, Any]] = None) -> GuideDocument:
    """
    Turn model output (or nothing) into a complete guide.

    Args:
        raw: Parsed model JSON, or None if the output was unusable
        spec: Project the guide is for
        metadata: Call metadata to attach

    Returns:
        GuideDocument: Guide whose documentation covers every file exactly once
    """
    raw = raw if isinstance(raw, dict) else {}

    folder_structure = raw.get("folderStructure", raw.get("folder_structure"))
    if not isinstance(folder_structure, dict) or not folder_structure:
        folder_structure = default_folder_structure(spec.project_name)

    leaf_paths = enumerate_leaf_paths(folder_structure)
    docs, stats = reconcile_file_docs(leaf_paths, raw.get("fileDocumentation", raw.get("file_documentation")))

    configuration = raw.get("configurationGuide", raw.get("configuration_guide"))

    logger.info(
        f"Guide documentation covers {len(docs)} files",
        extra={"from_model": stats["fromModel"], "synthesized": stats["synthesized"], "dropped": stats["dropped"]}
    )

    return GuideDocument(
        readme=render_readme(parse_section(raw.get("readme")), spec),
        folder_structure=folder_structure,
        file_documentation=docs,
        setup_instructions=render_setup(parse_section(raw.get("setupInstructions", raw.get("setup_instructions")))),
        configuration_guide=configuration if isinstance(configuration, dict) else {},
        metadata={**(metadata or {}), "fileDocumentation": stats}
    )
