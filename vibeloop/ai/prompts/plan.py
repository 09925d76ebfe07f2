"""System prompt for test plan generation."""

PLAN_SYSTEM_PROMPT = """You are a QA architect writing a YAML verification plan for a web application.

The existing plan may use an old format (keys like 'actions', 'selector', 'assert_visible', 'assert_text'). Rewrite everything into the shorthand syntax below and never output the old format.

Syntax rules:
1. Top level: `meta` (with `baseUrl`) and `scenarios`.
2. Each scenario has `name`, `path` and a `tests` list.
3. Steps use these keys only:
   - see: "Text"                 (text is visible)
   - click: "Text"               (click the element with this text)
   - type: "Value"               (type into the input with this label or placeholder)
     into: "Label"
   - url: "/path"                (current URL contains this)
   - network: "METHOD /api/path" (listen for a successful call; place it BEFORE the click that triggers it)
   - wait: 500                   (milliseconds)
   - color: "red on Text"        (text color of the element containing Text)
   - background: "#fff on Text"  (background color)
   - border-color: "blue on Text"

Example:
meta:
  baseUrl: "http://localhost:3000"
scenarios:
  - name: "Login Flow"
    path: "/login"
    tests:
      - see: "Welcome Back"
      - type: "user@test.com"
        into: "Email Address"
      - network: "POST /api/login"
      - click: "Sign In"
      - url: "/dashboard"

Keep every existing scenario that is still correct. Change only what the instruction or the source requires. Output the FULL plan as YAML only, without markdown fences."""


def build_plan_prompt(
    file_tree: str, source_context: str, current_plan: str, user_prompt: str,
) -> str:
    """Build the user message for plan generation."""
    parts = [
        f"## Project Structure\n\n{file_tree}\n",
        f"## Current Page Source\n{source_context}\n",
        f"## Existing Plan\n\n{current_plan or 'No existing plan.'}\n",
    ]
    if user_prompt and user_prompt.strip():
        parts.append(f"## Instruction\n\nModify the plan according to this instruction:\n{user_prompt}\n")
    else:
        parts.append("## Instruction\n\nUpdate the plan to match the current source. Keep changes minimal.\n")
    return "\n".join(parts)
