"""ProjectHub AI constants and fixed values."""

from enum import Enum


class ChatMode(str, Enum):
    """Assistant conversation modes."""

    GENERAL = "general"
    CODING = "coding"
    CREATIVE = "creative"


# Sampling temperature per chat mode
MODE_TEMPERATURES = {
    ChatMode.GENERAL: 0.7,
    ChatMode.CODING: 0.3,
    ChatMode.CREATIVE: 0.9,
}

# Max tokens for conversational (non-JSON) replies
CHAT_MAX_TOKENS = 2000

# Credits
CREDIT_COST_FULL = 1.0
CREDIT_COST_HALF = 0.5
CREDIT_HISTORY_PAGE = 50

# Rate window length in seconds
RATE_WINDOW_SECONDS = 60.0

# Content safety thresholds
SHORT_TEXT_THRESHOLD = 5
SMALL_TALK_LENGTH = 20
BENEFIT_OF_DOUBT_LENGTH = 50

# Guide generation
DEFAULT_FILE_ESTIMATE = "15-30 mins"
PROJECT_ROOT_KEY = "project-root"


class LedgerAction(str, Enum):
    """Credit ledger entry types."""

    USE = "use"
    RESET = "reset"
    ADMIN_ADD = "admin_add"
    ADMIN_DEDUCT = "admin_deduct"
    PREMIUM_ACTIVATED = "premium_activated"


class TaskType(str, Enum):
    """Roadmap task categories."""

    SETUP = "setup"
    CODE = "code"
    TESTING = "testing"
    DEPLOYMENT = "deployment"
    DOCUMENTATION = "documentation"


class TaskStatus(str, Enum):
    """Roadmap task states at creation time."""

    LOCKED = "locked"
    ACTIVE = "active"


class LinkType(str, Enum):
    """Artifact submission link types."""

    GITHUB_REPO = "github-repo"
    GITHUB_COMMIT = "github-commit"
    GITHUB_PR = "github-pr"
    DEPLOYED_URL = "deployed-url"
    DESIGN_LINK = "design-link"
    DOC_LINK = "doc-link"
    SCREENSHOT_LINK = "screenshot-link"
    ANY = "any"


LINK_LABELS = {
    LinkType.GITHUB_REPO: "GitHub Repository URL",
    LinkType.GITHUB_COMMIT: "Commit URL",
    LinkType.GITHUB_PR: "Pull Request URL",
    LinkType.DEPLOYED_URL: "Live Application URL",
    LinkType.SCREENSHOT_LINK: "Screenshot URL",
}
DEFAULT_LINK_LABEL = "Submission URL"

LINK_PLACEHOLDERS = {
    LinkType.GITHUB_REPO: "https://github.com/username/project-name",
    LinkType.GITHUB_COMMIT: "https://github.com/username/repo/commit/abc123",
    LinkType.GITHUB_PR: "https://github.com/username/repo/pull/1",
    LinkType.DEPLOYED_URL: "https://your-app.vercel.app",
    LinkType.SCREENSHOT_LINK: "https://imgur.com/abc123",
}
DEFAULT_LINK_PLACEHOLDER = "https://example.com"

# Model specifications
MODEL_SPECS = {
    "llama-3.3-70b-versatile": {
        "name": "Llama 3.3 70B Versatile",
        "context_window": 32768,
        "max_output": 8192,
        "speed_tokens_per_sec": 300,
        "best_for": "Complex reasoning, detailed content",
    },
    "llama-3.1-8b-instant": {
        "name": "Llama 3.1 8B Instant",
        "context_window": 8192,
        "max_output": 4096,
        "speed_tokens_per_sec": 500,
        "best_for": "Fast responses, simple tasks",
    },
}
