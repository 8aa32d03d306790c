"""
Prompt templates for the assistant, guide, roadmap and task help calls.
"""

import json
from typing import Any, Dict

from projecthub_ai.constants import ChatMode
from projecthub_ai.generation.models import ProjectSpec

ASSISTANT_NAME = "Diksuchi-AI"

GENERAL_SYSTEM_PROMPT = f"""You are {ASSISTANT_NAME}, a warm and friendly assistant for learners building projects on ProjectHub.

Personality:
- Encouraging and patient, with the occasional emoji
- Genuinely excited about the learner's project

Approach:
- Keep answers clear and easy to follow
- Give practical, actionable advice
- Ask a follow-up question when the request is ambiguous
- Celebrate progress

You help people turn ideas into working projects. Leave them feeling confident about the next step."""

CODING_SYSTEM_PROMPT = f"""You are {ASSISTANT_NAME}, a friendly coding mentor who enjoys pair programming with learners.

Style:
- Explain code the way you would to a friend sitting next to you
- Use simple language for complex ideas
- Share real-world examples and good practices
- Treat mistakes as learning opportunities

You help with debugging, writing clean code, explaining frameworks (React, Node.js, Express, MongoDB and others), algorithms and code reviews.

Always include:
- Working code examples with short comments
- Step-by-step explanations
- Common pitfalls to watch for"""

CREATIVE_SYSTEM_PROMPT = f"""You are {ASSISTANT_NAME}, an enthusiastic creative partner for project ideas.

You excel at:
- Generating unique project ideas
- Suggesting features and UI/UX directions
- Finding unusual approaches to a problem

Approach:
- Offer several options, not one answer
- Build on the learner's own ideas
- Ask "what if" questions
- Balance imagination with what a learner can actually build"""

SYSTEM_PROMPTS = {
    ChatMode.GENERAL: GENERAL_SYSTEM_PROMPT,
    ChatMode.CODING: CODING_SYSTEM_PROMPT,
    ChatMode.CREATIVE: CREATIVE_SYSTEM_PROMPT,
}

GUIDE_SYSTEM_PROMPT = (
    "You are an expert software development educator. "
    "Always respond with valid JSON only, no markdown formatting."
)

ROADMAP_SYSTEM_PROMPT = (
    "You are an expert software development curriculum designer. "
    "Always respond with valid JSON only."
)

TASK_HELP_SYSTEM_PROMPT = (
    "You are a friendly, patient coding mentor who explains things clearly for beginners. "
    "Always respond with valid JSON only. Use simple language, avoid jargon, and break "
    "complex concepts into small steps."
)

GUIDE_PROMPT_TEMPLATE = """You are creating a learning-focused project guide.

PROJECT DETAILS:
- Project Name: {project_name}
- Description: {description}
- Tech Stack: {tech_stack}
- Complexity: {complexity}
- Features: {features}
- Skill Level: {skill_level}
- Motivation: {motivation}
- Target Audience: {target_audience}

Return a JSON object with these keys:

1. "readme": a MARKDOWN STRING with an overview, learning objectives for this stack,
   tech stack details, key features, a getting started section and a project structure overview.

2. "folderStructure": a nested JSON object for a production-ready layout.
   Folders are objects, files are empty strings "" or null.
   Include every file a real project needs: README.md, .gitignore, package manifests,
   .env.example, configuration files, entry points, components, pages, routes,
   controllers, models and middleware as appropriate for the stack.
   Wrap everything in a single "project-root" key.

3. "fileDocumentation": an array with one entry for EVERY file in folderStructure
   (aim for 20-40 files). Each entry has:
   - "filePath": the exact path from folderStructure, without the project-root prefix
   - "purpose": what the file does and why it exists
   - "whatYouLearn": 3-5 specific learning points
   - "keyConcepts": 4-6 technical concepts
   - "estimatedTime": realistic time to implement

4. "setupInstructions": a MARKDOWN STRING with numbered setup steps and commands.

5. "configurationGuide": an object listing environment variables, split into
   "frontend" and "backend".

Rules:
- File paths in fileDocumentation MUST match folderStructure exactly
- Focus on learning and why each part matters
- Return ONLY valid JSON, no code fences

Format:
{{
  "readme": "# Project Title\\n\\n## Overview\\n...",
  "folderStructure": {{"project-root": {{"README.md": "", "src": {{"main.js": ""}}}}}},
  "fileDocumentation": [{{"filePath": "src/main.js", "purpose": "...", "whatYouLearn": [], "keyConcepts": [], "estimatedTime": "30 mins"}}],
  "setupInstructions": "## Setup Instructions\\n\\n1. ...",
  "configurationGuide": {{"frontend": {{}}, "backend": {{}}}}
}}"""

ROADMAP_PROMPT_TEMPLATE = """You are designing a learning-focused task roadmap.

PROJECT DETAILS:
- Project: {project_name}
- Description: {description}
- Tech Stack: {tech_stack}
- Complexity: {complexity}
- Features: {features}
- Skill Level: {skill_level}

Create 4-6 milestones with 2-4 tasks each. Tasks build on each other.

Task types: setup, code, testing, deployment, documentation.
Artifact link types: github-repo, github-commit, github-pr, deployed-url, screenshot-link.

Rules:
1. The first task is "Create GitHub Repository" with linkType "github-repo" and status "active"
2. Every other task has status "locked"
3. Every task has an artifactConfig with a linkType
4. secondaryArtifact is optional
5. learningPoints has at least 2 specific entries
6. resources lists documentation URLs (may be empty)
7. estimatedTime is realistic for {skill_level} developers
8. Deployment tasks name a beginner-friendly free platform (Vercel, Netlify or Render)
   chosen for the stack, with basic steps and documentation links

Return ONLY valid JSON in this shape:
{{
  "milestones": [
    {{
      "milestoneId": 1,
      "name": "Project Setup",
      "estimatedDays": 2,
      "status": "pending",
      "tasks": [
        {{
          "taskId": 1,
          "title": "Create GitHub Repository",
          "description": "Initialize your project repository",
          "type": "setup",
          "order": 1,
          "status": "active",
          "artifactConfig": {{
            "linkType": "github-repo",
            "required": true,
            "label": "GitHub Repository URL",
            "placeholder": "https://github.com/username/project-name",
            "helpText": "Paste your repository URL"
          }},
          "learningPoints": ["Git basics", "Repository setup"],
          "resources": ["https://docs.github.com"],
          "estimatedTime": "15 mins"
        }}
      ]
    }}
  ]
}}"""

TASK_HELP_PROMPT_TEMPLATE = """Generate beginner-friendly help for this task:

Task Title: {title}
Task Description: {description}
Task Type: {task_type}
Project Context: {project_name} - {project_description}
Tech Stack: {tech_stack}
Skill Level: {skill_level}

1. Commands: 3-5 essential commands or snippets, each with a simple description of
   what it does and why.
   Format: {{"description": "...", "command": "..."}}

2. Steps: 5-8 sequential steps, each focused on one thing, in an encouraging tone,
   explaining why the step matters. Add a short code snippet where useful.
   Format: {{"title": "...", "description": "...", "code": "optional"}}

Return ONLY valid JSON:
{{
  "commands": [{{"description": "Install dependencies", "command": "npm install"}}],
  "steps": [{{"title": "Set up your project", "description": "Let's start by...", "code": "mkdir my-project"}}]
}}"""


def get_system_prompt(mode: ChatMode) -> str:
    """System prompt for a chat mode, defaulting to general."""
    return SYSTEM_PROMPTS.get(mode, GENERAL_SYSTEM_PROMPT)


def _spec_fields(spec: ProjectSpec) -> Dict[str, Any]:
    return {
        "project_name": spec.project_name,
        "description": spec.description,
        "tech_stack": spec.tech_stack_summary() or "Not specified",
        "complexity": spec.complexity,
        "features": ", ".join(spec.features) if spec.features else "Not specified",
        "skill_level": spec.skill_level,
        "motivation": spec.motivation or "Not specified",
        "target_audience": spec.target_audience or "General",
    }


def build_guide_prompt(spec: ProjectSpec) -> str:
    """Build the user prompt for project guide generation."""
    return GUIDE_PROMPT_TEMPLATE.format(**_spec_fields(spec))


def build_roadmap_prompt(spec: ProjectSpec) -> str:
    """Build the user prompt for roadmap generation."""
    return ROADMAP_PROMPT_TEMPLATE.format(**_spec_fields(spec))


def build_task_help_prompt(spec: ProjectSpec, task: Dict[str, Any]) -> str:
    """
    Build the user prompt for task help.

    Args:
        spec: Project the task belongs to
        task: Task fields (``title``, ``description``, ``type``)
    """
    stack = spec.tech_stack if isinstance(spec.tech_stack, str) else spec.tech_stack.to_wire()
    return TASK_HELP_PROMPT_TEMPLATE.format(
        title=task.get("title", ""),
        description=task.get("description", ""),
        task_type=task.get("type", "code"),
        project_name=spec.project_name,
        project_description=spec.description,
        tech_stack=json.dumps(stack, ensure_ascii=False),
        skill_level=spec.skill_level,
    )
