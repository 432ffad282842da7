from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from sdiff.diff import generate_diff
from sdiff.history import ReplacementHistory
from sdiff.models import DiffEntry, DiffOptions, DiffResult, DiffType, FileComparison, ReplacementInstruction
from sdiff.normalize import extract_paragraph_mappings, normalize_line
from sdiff.patch import apply_instructions
from sdiff.processor import apply_replacements_to_file, compare_files, compare_texts
from sdiff.replacement import build_replacement_map, deserialize_instruction, serialize_instruction
from sdiff.session import ReplacementSession

try:
    __version__ = version("sdiff")
except PackageNotFoundError:
    # Running from a source checkout without installation.
    _version_file = Path(__file__).parent / "VERSION"
    if _version_file.is_file():
        __version__ = _version_file.read_text().strip()
    else:
        __version__ = "0.0.0-dev"

__all__ = [
    "DiffEntry",
    "DiffOptions",
    "DiffResult",
    "DiffType",
    "FileComparison",
    "ReplacementHistory",
    "ReplacementInstruction",
    "ReplacementSession",
    "apply_instructions",
    "apply_replacements_to_file",
    "build_replacement_map",
    "compare_files",
    "compare_texts",
    "deserialize_instruction",
    "extract_paragraph_mappings",
    "generate_diff",
    "normalize_line",
    "serialize_instruction",
    "__version__",
]
