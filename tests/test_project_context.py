"""Tests for project context gathering."""

from vibeloop.repair.project_context import (
    get_critical_source_code,
    get_project_structure,
    read_manifest,
)


class TestProjectStructure:
    """Tests for get_project_structure."""

    def test_lists_code_files(self, project_dir):
        """Test code and config files appear in the tree."""
        tree = get_project_structure(project_dir)
        assert "app/" in tree
        assert "page.tsx" in tree
        assert "package.json" in tree

    def test_skips_ignored_entries(self, project_dir):
        """Test dependencies, the plan and its backups are left out."""
        (project_dir / "node_modules" / "react").mkdir(parents=True)
        (project_dir / "vibe.backup.2024-01-01T00-00-00-000Z.yaml").write_text("x")
        (project_dir / "README.md").write_text("x")

        tree = get_project_structure(project_dir)

        assert "node_modules" not in tree
        assert "vibe.yaml" not in tree
        assert "backup" not in tree
        assert "README.md" not in tree

    def test_depth_limit(self, tmp_path):
        """Test directories deeper than the limit are not expanded."""
        deep = tmp_path
        for name in "abcdefg":
            deep = deep / name
        deep.mkdir(parents=True)
        (deep / "leaf.ts").write_text("")

        assert "leaf.ts" not in get_project_structure(tmp_path)


class TestCriticalSourceCode:
    """Tests for get_critical_source_code."""

    def test_file_blocks_use_relative_paths(self, project_dir):
        """Test each source file is wrapped in a FILE marker."""
        context = get_critical_source_code(project_dir)
        assert "--- FILE: app/page.tsx ---" in context
        assert "export default function Page()" in context
        assert "package.json" not in context

    def test_large_files_are_skipped(self, project_dir):
        """Test oversized files are listed but not read."""
        (project_dir / "app" / "big.ts").write_text("x" * 200)

        context = get_critical_source_code(project_dir, max_file_bytes=100)

        assert "--- FILE: app/big.ts (Skipped: Too Large) ---" in context
        assert "x" * 200 not in context

    def test_truncation(self, project_dir):
        """Test the total context is capped."""
        context = get_critical_source_code(project_dir, max_chars=20)
        assert context.endswith("...[TRUNCATED]")
        assert len(context) == 20 + len("\n...[TRUNCATED]")


class TestManifest:
    """Tests for read_manifest."""

    def test_reads_manifest(self, project_dir):
        assert '"next"' in read_manifest(project_dir)

    def test_missing_manifest(self, tmp_path):
        assert read_manifest(tmp_path) == ""
