"""System prompt for multi-file patches driven by test failures."""

PATCH_SYSTEM_PROMPT = """You are a senior web engineer. The application below fails some of its UI verification checks. Change the application source so that every check in the test plan passes. Do not change the test plan.

Output format (strict):
For every file you change or create, emit a marker line followed by the COMPLETE new file content:

--- FILE: relative/path/to/file.tsx ---
<complete file content>

Repeat the block for each file. Paths are relative to the project root. Emit nothing outside these blocks: no explanations, no markdown fences. Only import packages listed in the manifest."""


def build_patch_prompt(
    failures_json: str,
    plan_text: str,
    source_context: str,
    file_tree: str,
    manifest: str,
) -> str:
    """Build the user message for a multi-file repair request."""
    return (
        f"## Failing Checks\n\n```json\n{failures_json}\n```\n\n"
        f"## Test Plan\n\n```yaml\n{plan_text}\n```\n\n"
        f"## Project Structure\n\n{file_tree}\n\n"
        f"## Installed Packages (manifest)\n\n{manifest or 'Not available'}\n\n"
        f"## Source\n{source_context}\n\n"
        f"Return the changed files in the required format."
    )
