"""Tests for dtomaker entities command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from dtomaker.cli.main import cli

runner = CliRunner()


class TestEntitiesCommand:
    def test_lists_mapped_entities(self, blog_project: Path) -> None:
        admin = blog_project / "src" / "Entity" / "Admin"
        admin.mkdir()
        (admin / "User.php").write_text(
            "<?php\nnamespace App\\Entity\\Admin;\n\nuse Doctrine\\ORM\\Mapping as ORM;\n\n"
            "#[ORM\\Entity]\nclass User\n{\n}\n"
        )

        result = runner.invoke(cli, ["entities", "--root", str(blog_project)])

        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["Admin\\User", "Post", "Task"]

    def test_json_output(self, php_project: Path) -> None:
        result = runner.invoke(cli, ["entities", "--root", str(php_project), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data == {"root": str(php_project.resolve()), "entities": ["Task"]}

    def test_no_entities(self, php_project: Path) -> None:
        (php_project / "src" / "Entity" / "Task.php").unlink()

        result = runner.invoke(cli, ["entities", "--root", str(php_project)])

        assert result.exit_code == 0
        assert "No entities found" in result.stdout

    def test_discovers_root_from_cwd(self, php_project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(php_project / "src")

        result = runner.invoke(cli, ["entities"])

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "Task"

    def test_invalid_project_config(self, php_project: Path) -> None:
        (php_project / ".dtomaker.yaml").write_text("project:\n  psr4_prefix: 'not a prefix'\n")

        result = runner.invoke(cli, ["entities", "--root", str(php_project)])

        assert result.exit_code == 1
        assert "project.psr4_prefix" in result.output
