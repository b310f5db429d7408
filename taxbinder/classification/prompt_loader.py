from pathlib import Path

from taxbinder.classification.exceptions import ClassificationError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template bundled with the package.

    Args:
        name: File name inside the prompt directory, e.g. 'classification_prompt.txt'.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Raises:
        ClassificationError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ClassificationError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(prompt_dir: Path | None = None) -> str:
    """Load the classification JSON schema.

    Raises:
        ClassificationError: if the file cannot be read.
    """
    return load_prompt_template("classification_schema.json", prompt_dir)
