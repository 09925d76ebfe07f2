"""Tests for AI prompts."""

from vibeloop.ai.prompts.build_fix import BUILD_FIX_SYSTEM_PROMPT, build_build_fix_prompt
from vibeloop.ai.prompts.patch import PATCH_SYSTEM_PROMPT, build_patch_prompt
from vibeloop.ai.prompts.plan import PLAN_SYSTEM_PROMPT, build_plan_prompt


class TestBuildFixPrompts:
    """Tests for build fix prompts."""

    def test_system_prompt_requires_full_file(self):
        """Test the build fix prompt asks for the full file only."""
        assert "FULL file" in BUILD_FIX_SYSTEM_PROMPT
        assert "manifest" in BUILD_FIX_SYSTEM_PROMPT

    def test_missing_manifest(self):
        """Test an empty manifest is called out."""
        prompt = build_build_fix_prompt("logs", "source", "")
        assert "Not available" in prompt


class TestPatchPrompts:
    """Tests for multi-file patch prompts."""

    def test_system_prompt_describes_marker(self):
        """Test the patch prompt documents the FILE marker format."""
        assert "--- FILE: " in PATCH_SYSTEM_PROMPT

    def test_build_patch_prompt(self):
        """Test every context section is included."""
        prompt = build_patch_prompt("[]", "scenarios: []", "--- FILE: a.ts ---", "├── a.ts", "{}")
        assert "## Failing Checks" in prompt
        assert "scenarios: []" in prompt
        assert "├── a.ts" in prompt
        assert "--- FILE: a.ts ---" in prompt


class TestPlanPrompts:
    """Tests for plan generation prompts."""

    def test_system_prompt_lists_shorthand(self):
        """Test the plan prompt lists the shorthand keys."""
        for key in ("see:", "click:", "into:", "url:", "network:", "wait:", "border-color:"):
            assert key in PLAN_SYSTEM_PROMPT

    def test_instruction_included(self):
        """Test an explicit instruction replaces the minimal-change default."""
        prompt = build_plan_prompt("tree", "src", "plan", "add a search test")
        assert "add a search test" in prompt
        assert "Keep changes minimal" not in prompt

    def test_no_instruction(self):
        prompt = build_plan_prompt("tree", "src", "", "")
        assert "Keep changes minimal" in prompt
        assert "No existing plan." in prompt
