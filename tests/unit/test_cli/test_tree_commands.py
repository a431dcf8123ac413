"""Tests for the db and tree CLI commands.

Testing approach:
- Uses Click's CliRunner for command invocation
- Runs against a real file-backed SQLite database per test (DB_URL)
- Each command opens and disposes its own engine, as in production
"""

import json

from click.testing import CliRunner
import pytest

from nested_hierarchy.cli.main import cli

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner(monkeypatch, tmp_path):
    """CliRunner bound to an initialized, empty database.

    Returns:
        CliRunner instance configured for testing.
    """
    monkeypatch.setenv("DB_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    runner = CliRunner()
    result = runner.invoke(cli, ["db", "init"])
    assert result.exit_code == 0, result.output
    return runner


@pytest.fixture
def small_tree(cli_runner):
    """Books(1) -> Fiction(2), Science(3)."""
    for args in (["Books"], ["Fiction", "--parent", "1"], ["Science", "--parent", "1"]):
        result = cli_runner.invoke(cli, ["tree", "add", *args])
        assert result.exit_code == 0, result.output
    return cli_runner


def show_json(runner, category_id: int) -> list[dict]:
    result = runner.invoke(cli, ["tree", "show", str(category_id), "--format", "json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# =============================================================================
# db
# =============================================================================


def test_db_init_reports_success(cli_runner):
    result = cli_runner.invoke(cli, ["db", "init"])

    assert result.exit_code == 0
    assert "Database initialized" in result.output


# =============================================================================
# tree add / show
# =============================================================================


def test_add_root_and_children(cli_runner):
    result = cli_runner.invoke(cli, ["tree", "add", "Books"])
    assert result.exit_code == 0
    assert "Created category 1 (singleton)" in result.output

    result = cli_runner.invoke(cli, ["tree", "add", "Fiction", "--parent", "1"])
    assert result.exit_code == 0
    assert "Created category 2 (leaf)" in result.output


def test_show_json_lists_subtree_in_preorder(small_tree):
    rows = show_json(small_tree, 1)

    assert [(r["name"], r["lft"], r["rgt"], r["depth"]) for r in rows] == [
        ("Books", 1, 6, 0),
        ("Fiction", 2, 3, 1),
        ("Science", 4, 5, 1),
    ]


def test_show_ascii_sorted_by_name(small_tree):
    small_tree.invoke(cli, ["tree", "add", "Art", "--parent", "1"])

    result = small_tree.invoke(cli, ["tree", "show", "1", "--sort-by-name"])

    assert result.exit_code == 0
    names = [line.strip().split(" ")[0] for line in result.stdout.splitlines() if "[id=" in line]
    assert names == ["Books", "Art", "Fiction", "Science"]


def test_show_missing_category_fails(cli_runner):
    result = cli_runner.invoke(cli, ["tree", "show", "99"])

    assert result.exit_code == 1
    assert "Category not found" in result.output


def test_add_with_other_tenant_than_parent_fails(small_tree):
    result = small_tree.invoke(cli, ["tree", "add", "Other", "--parent", "1", "--tenant", "t2"])

    assert result.exit_code == 1
    assert "another scope" in result.output
    assert len(show_json(small_tree, 1)) == 3


# =============================================================================
# tree check / attach / detach / prune
# =============================================================================


def test_check_reports_consistent_tree(small_tree):
    result = small_tree.invoke(cli, ["tree", "check", "1"])

    assert result.exit_code == 0
    assert "is consistent (3 nodes)" in result.output


def test_detach_and_attach(small_tree):
    result = small_tree.invoke(cli, ["tree", "detach", "2"])
    assert result.exit_code == 0
    assert "Detached 2 (1 nodes)" in result.output
    assert [r["name"] for r in show_json(small_tree, 1)] == ["Books", "Science"]

    result = small_tree.invoke(cli, ["tree", "attach", "3", "2"])
    assert result.exit_code == 0
    assert "Attached 2 under 3 (depth 2)" in result.output
    assert [r["name"] for r in show_json(small_tree, 1)] == ["Books", "Science", "Fiction"]


def test_attach_into_same_tree_fails(small_tree):
    result = small_tree.invoke(cli, ["tree", "attach", "2", "1"])

    assert result.exit_code == 1
    assert "Can't add a tree to itself" in result.output


def test_prune_requires_confirmation(small_tree):
    result = small_tree.invoke(cli, ["tree", "prune", "2"], input="n\n")

    assert result.exit_code == 1
    assert len(show_json(small_tree, 1)) == 3


def test_prune_deletes_subtree(small_tree):
    result = small_tree.invoke(cli, ["tree", "prune", "2", "--yes"])

    assert result.exit_code == 0
    assert "Deleted 1 categories" in result.output
    assert [r["name"] for r in show_json(small_tree, 1)] == ["Books", "Science"]
