import re

from pydantic import BaseModel

EXPORT_EXTENSION = ".dbml"
DEFAULT_EXPORT_STEM = "schema"

_WRAPPING_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*([\s\S]*?)\s*```\s*$")
_STRAY_FENCE = re.compile(r"```(?:dbml)?", re.IGNORECASE)
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


class ExportedFile(BaseModel):
    filename: str
    content: str
    media_type: str = "text/plain"


def strip_markdown_fences(text: str | None) -> str:
    """Remove markdown code fences a model may wrap around generated DBML."""
    if not text:
        return ""
    wrapped = _WRAPPING_FENCE.match(text)
    if wrapped:
        return wrapped.group(1).strip()
    return _STRAY_FENCE.sub("", text).strip()


def export_filename(name: str | None) -> str:
    stem = _UNSAFE_FILENAME_CHARS.sub("_", (name or "").strip()).strip(" .")
    return f"{stem or DEFAULT_EXPORT_STEM}{EXPORT_EXTENSION}"


def build_export(name: str | None, markup_text: str) -> ExportedFile | None:
    if not markup_text:
        return None
    return ExportedFile(filename=export_filename(name), content=markup_text)
