"""Tests for DataDAO project detection and the MCP server helpers."""

import asyncio
import json

from deploy_server import AnswerQueue, create_server
from deployment import RecordStore
from project import COMPONENTS, DataDAOProject
from test_helpers import make_record


def tool_text(server, name: str, arguments: dict | None = None) -> str:
    """Call an MCP tool and return its text output."""
    result = asyncio.run(server.call_tool(name, arguments or {}))
    if isinstance(result, tuple):
        # Newer servers also return structured output
        result = result[0]
    return "\n".join(item.text for item in result)


class TestDataDAOProject:
    """Test project detection and validation"""

    def test_detect_without_record(self, project_dir):
        """Test a directory without deployment.json is not a project"""
        project = DataDAOProject.detect(project_dir)

        assert not project.is_valid
        assert project.root == project_dir.resolve()
        is_valid, message = project.validate()
        assert not is_valid
        assert "deployment.json not found" in message

    def test_detect_with_record(self, project_dir):
        """Test a directory with a record is a project"""
        RecordStore(project_dir / "deployment.json").save(make_record("create"))

        project = DataDAOProject.detect(project_dir)

        assert project.is_valid
        assert project.validate() == (True, "Project validation passed")

    def test_invalid_json(self, project_dir):
        """Test an unreadable record fails validation"""
        (project_dir / "deployment.json").write_text("{")

        is_valid, message = DataDAOProject.detect(project_dir).validate()

        assert not is_valid
        assert "Cannot read" in message

    def test_not_an_object(self, project_dir):
        """Test a non-object record fails validation"""
        (project_dir / "deployment.json").write_text("[]")
        assert not DataDAOProject.detect(project_dir).validate()[0]

    def test_suggestions_point_to_parent(self, project_dir):
        """Test a record in the parent directory is suggested"""
        (project_dir / "deployment.json").write_text("{}")
        child = project_dir / "contracts"
        child.mkdir()

        suggestions = DataDAOProject.detect(child).get_error_suggestions()

        assert any("parent directory" in s for s in suggestions)

    def test_missing_components(self, project_dir):
        """Test missing component directories are listed"""
        (project_dir / "contracts").mkdir()
        (project_dir / "deployment.json").write_text("{}")

        project = DataDAOProject.detect(project_dir)

        assert project.missing_components == [c for c in COMPONENTS if c != "contracts"]
        assert any("proof" in s for s in project.get_error_suggestions())


class TestAnswerQueue:
    """Test replayed operator answers"""

    def test_answers_in_order(self):
        """Test answers are returned in the order given"""
        prompt = AnswerQueue(["42", "0xkey"])

        assert prompt("Enter the dlpId: ") == "42"
        assert prompt("Enter the key: ") == "0xkey"
        assert prompt.asked == ["Enter the dlpId:", "Enter the key:"]

    def test_exhausted(self):
        """Test an exhausted queue answers with an empty string"""
        assert AnswerQueue()("Enter the dlpId: ") == ""


class TestDeployServer:
    """Test MCP server construction"""

    def test_tools_registered(self, project_dir):
        """Test every deployment tool is exposed"""
        server = create_server(DataDAOProject.detect(project_dir))

        tools = asyncio.run(server.list_tools())

        assert {t.name for t in tools} == {
            "datadao_status",
            "datadao_next",
            "datadao_deploy",
            "datadao_guide",
        }

    def test_invalid_settings_reported_by_tools(self, project_dir):
        """Test tools report a broken settings file"""
        state_dir = project_dir / ".datadao"
        state_dir.mkdir()
        (state_dir / "settings.json").write_text(json.dumps({"bogus": 1}))
        server = create_server(DataDAOProject.detect(project_dir))

        for tool in ("datadao_status", "datadao_next", "datadao_deploy"):
            text = tool_text(server, tool)
            assert "Configuration" in text
            assert "bogus" in text
