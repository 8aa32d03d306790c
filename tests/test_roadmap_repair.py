"""Tests for task roadmap repair."""

import pytest

from projecthub_ai.constants import LinkType, TaskStatus, TaskType
from projecthub_ai.generation.models import TaskRoadmap
from projecthub_ai.generation.roadmap import repair_artifact, repair_roadmap, repair_secondary, repair_task


def _model_roadmap():
    return {
        "milestones": [
            {
                "name": "Setup",
                "estimatedDays": 2,
                "tasks": [
                    {"title": "Init repo", "type": "setup", "artifactConfig": {"linkType": "github-commit"}},
                    {"title": "Scaffold", "type": "setup"},
                ],
            },
            {
                "milestoneId": 9,
                "name": "Ship",
                "tasks": [
                    {"title": "Deploy", "type": "deployment"},
                    {"title": "Write docs", "type": "writing", "artifactConfig": {"linkType": "doc-link"}},
                ],
            },
        ]
    }


class TestRepairRoadmap:
    def test_global_ids_and_status(self):
        milestones, stats = repair_roadmap(_model_roadmap())
        tasks = TaskRoadmap(milestones=milestones).tasks

        assert [t.task_id for t in tasks] == [1, 2, 3, 4]
        assert [t.order for t in tasks] == [1, 2, 1, 2]
        assert [t.status for t in tasks] == [TaskStatus.ACTIVE] + [TaskStatus.LOCKED] * 3
        assert [m.milestone_id for m in milestones] == [1, 2]
        assert stats == {"usedDefault": False, "milestones": 2, "tasks": 4}

    def test_first_task_collects_repository(self):
        milestones, _ = repair_roadmap(_model_roadmap())
        first = milestones[0].tasks[0].artifact_config
        assert first.link_type is LinkType.GITHUB_REPO
        assert first.required is True
        assert first.label == "GitHub Repository URL"

    def test_link_type_fallbacks(self):
        milestones, _ = repair_roadmap(_model_roadmap())
        scaffold, deploy, docs = milestones[0].tasks[1], milestones[1].tasks[0], milestones[1].tasks[1]

        assert scaffold.artifact_config.link_type is LinkType.GITHUB_COMMIT
        assert deploy.artifact_config.link_type is LinkType.DEPLOYED_URL
        assert deploy.artifact_config.placeholder == "https://your-app.vercel.app"
        assert docs.type is TaskType.CODE
        assert docs.artifact_config.link_type is LinkType.DOC_LINK

    def test_missing_fields_backfilled(self):
        milestones, _ = repair_roadmap([{"tasks": [{}]}])
        task = milestones[0].tasks[0]

        assert milestones[0].name == "Milestone 1"
        assert milestones[0].estimated_days == 3
        assert task.title == "Task 1"
        assert task.learning_points
        assert task.estimated_time == "1 hour"

    @pytest.mark.parametrize("raw", [None, {}, {"milestones": []}, {"milestones": [{"tasks": []}]}, "nope"])
    def test_no_tasks_uses_default(self, raw):
        milestones, stats = repair_roadmap(raw)
        tasks = TaskRoadmap(milestones=milestones).tasks

        assert stats["usedDefault"] is True
        assert len(milestones) == 3
        assert len(tasks) == 4
        assert tasks[0].artifact_config.link_type is LinkType.GITHUB_REPO
        assert tasks[-1].artifact_config.link_type is LinkType.DEPLOYED_URL

    def test_wire_format(self):
        milestones, _ = repair_roadmap(None)
        wire = TaskRoadmap(milestones=milestones).to_wire()
        task = wire["milestones"][0]["tasks"][0]
        assert task["taskId"] == 1
        assert task["artifactConfig"]["linkType"] == "github-repo"
        assert task["status"] == "active"


class TestArtifacts:
    def test_first_task_keeps_text_only_for_repo_type(self):
        declared_repo = repair_artifact(
            {"linkType": "github-repo", "label": "Your repo"}, TaskType.SETUP, is_first=True
        )
        declared_other = repair_artifact(
            {"linkType": "deployed-url", "label": "Live site"}, TaskType.SETUP, is_first=True
        )
        assert declared_repo.label == "Your repo"
        assert declared_other.label == "GitHub Repository URL"

    def test_invalid_link_type_falls_back(self):
        artifact = repair_artifact({"linkType": "carrier-pigeon", "label": "Bird"}, TaskType.TESTING, is_first=False)
        assert artifact.link_type is LinkType.GITHUB_COMMIT
        assert artifact.label == "Commit URL"

    def test_secondary_dropped_when_invalid(self):
        assert repair_secondary({"linkType": "bogus"}) is None
        assert repair_secondary("text") is None

    def test_secondary_optional_by_default(self):
        secondary = repair_secondary({"linkType": "screenshot-link"})
        assert secondary.required is False
        assert secondary.label == "Screenshot URL"

    def test_task_secondary_attached(self):
        task = repair_task({"title": "UI", "secondaryArtifact": {"linkType": "design-link", "required": True}}, 5, 1)
        assert task.secondary_artifact.link_type is LinkType.DESIGN_LINK
        assert task.secondary_artifact.required is True
        assert task.status is TaskStatus.LOCKED
