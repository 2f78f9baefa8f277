import json
from pathlib import Path

from vertex_processor.extraction.exceptions import PromptLoadError
from vertex_processor.extraction.field_schema import FieldSchema

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the extraction prompt template from a file.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled invoice_prompt.txt.

    Returns:
        The raw template string with a ``{json_schema}`` placeholder.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "invoice_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt template: {exc}") from exc


def build_invoice_prompt(schema: FieldSchema, template: str | None = None) -> str:
    """Render the instruction text sent with every invoice document."""
    if template is None:
        template = load_prompt_template()
    skeleton = json.dumps(schema.skeleton(), indent=2)
    return template.format(json_schema=skeleton).strip()
