"""
Unit tests for request, editor ID and editor models.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from neohub.models import Editor, EditorID, RunRequest


def make_request(path=None, wd="/home/tester/projects", name=None):
    return RunRequest(wd=Path(wd), bin=Path("/usr/bin/neovide"), path=path, name=name)


class TestRunRequest:
    """Test RunRequest validation."""

    def test_requires_absolute_paths(self):
        """Test relative wd/bin are rejected."""
        with pytest.raises(ValidationError):
            RunRequest(wd=Path("projects"), bin=Path("/usr/bin/neovide"))
        with pytest.raises(ValidationError):
            RunRequest(wd=Path("/tmp"), bin=Path("neovide"))

    def test_empty_strings_become_none(self):
        """Test empty name/path are treated as missing."""
        request = RunRequest(wd=Path("/tmp"), bin=Path("/usr/bin/neovide"), name="", path="")

        assert request.name is None
        assert request.path is None

    def test_is_immutable(self):
        """Test requests cannot be modified after creation."""
        request = make_request("app")

        with pytest.raises(ValidationError):
            request.path = "other"

    def test_to_wire(self):
        """Test the wire representation uses plain strings."""
        wire = RunRequest(
            wd=Path("/tmp"),
            bin=Path("/usr/bin/neovide"),
            opts=["--frame", "none"],
            env={"A": "1"},
        ).to_wire()

        assert wire == {
            "wd": "/tmp",
            "bin": "/usr/bin/neovide",
            "name": None,
            "path": None,
            "opts": ["--frame", "none"],
            "env": {"A": "1"},
        }


class TestEditorID:
    """Test editor identity resolution."""

    def test_no_path_is_working_directory(self):
        assert EditorID.from_request(make_request()) == EditorID("/home/tester/projects")

    def test_relative_path_joined_to_wd(self):
        assert EditorID.from_request(make_request("app/src")) == EditorID("/home/tester/projects/app/src")

    def test_path_is_normalized(self):
        """Test dot segments and trailing slashes collapse to one identity."""
        ids = {
            EditorID.from_request(make_request("app")),
            EditorID.from_request(make_request("./app/")),
            EditorID.from_request(make_request("app", wd="/home/tester/projects/")),
            EditorID.from_request(make_request("../projects/app")),
            EditorID.from_request(make_request(".", wd="/home/tester/projects/app")),
        }

        assert ids == {EditorID("/home/tester/projects/app")}

    def test_absolute_path_ignores_wd(self):
        assert EditorID.from_request(make_request("/etc/hosts")) == EditorID("/etc/hosts")

    def test_home_is_expanded(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/tester")

        assert EditorID.from_request(make_request("~/notes", wd="/tmp")) == EditorID("/home/tester/notes")

    def test_last_path_component(self):
        assert EditorID("/home/tester/projects/app").last_path_component == "app"
        assert EditorID("/").last_path_component == "/"


class TestEditor:
    """Test the managed editor model."""

    def _editor(self, path, name=None):
        process = MagicMock()
        process.pid = 1234
        editor_id = EditorID(path)
        return Editor(editor_id, name, process, make_request(path))

    def test_name_defaults_to_last_component(self):
        assert self._editor("/home/tester/projects/app").name == "app"

    def test_explicit_name(self):
        assert self._editor("/home/tester/projects/app", name="API").name == "API"

    def test_display_path_shortens_home(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/tester")

        assert self._editor("/home/tester/projects/app").display_path == "~/projects/app"
        assert self._editor("/home/testerx/app").display_path == "/home/testerx/app"
        assert self._editor("/srv/app").display_path == "/srv/app"

    def test_display_path_with_root_home(self, monkeypatch):
        monkeypatch.setenv("HOME", "/")

        assert self._editor("/srv/app").display_path == "/srv/app"

    def test_touch_updates_access_time(self):
        editor = self._editor("/srv/app")
        editor.last_access_time = 0.0

        editor.touch()

        assert editor.last_access_time > 0.0

    def test_quit_terminates_process(self):
        editor = self._editor("/srv/app")

        editor.quit()

        editor.process.terminate.assert_called_once_with()

    def test_pid_and_dict(self):
        editor = self._editor("/srv/app")

        assert editor.pid == 1234
        assert editor.to_dict()["id"] == "/srv/app"
        assert editor.to_dict()["pid"] == 1234
