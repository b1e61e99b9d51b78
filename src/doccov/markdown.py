"""
Extract code blocks and identifiers from Markdown documentation.

Extraction is regex-based and deliberately loose: the docs impact analyzer
would rather flag a stray mention than miss a real one.
"""
import logging
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, TypedDict

from doccov.constants import (
    DEFAULT_CODE_BLOCK_LANGUAGE,
    DEFAULT_IGNORE_DIRS,
    DOCS_CODE_LANGUAGES,
    EXAMPLE_BUILTINS,
    MARKDOWN_EXTENSIONS,
    MIN_IDENTIFIER_LENGTH,
)
from doccov.patterns import (
    CODE_CALL_SITE,
    CODE_DEFAULT_IMPORT,
    CODE_METHOD_CALL,
    CODE_NAMED_IMPORT,
    CODE_NAMESPACE_IMPORT,
    MARKDOWN_FENCED_CODE_BLOCK,
)

logger = logging.getLogger(__name__)

__all__ = [
    "CodeBlockInfo",
    "MethodCall",
    "MarkdownFile",
    "extract_code_blocks",
    "extract_imports",
    "extract_function_calls",
    "extract_method_calls",
    "is_code_language",
    "parse_markdown_files",
    "load_markdown_dir",
]


class CodeBlockInfo(TypedDict):
    """A fenced code block extracted from documentation."""
    language: str
    code: str
    start_line: int
    end_line: int


class MethodCall(TypedDict):
    """A ``.method(`` call site inside a code block."""
    name: str
    line: int
    context: str


def is_code_language(language: str) -> bool:
    """Languages scanned for references; unlabelled blocks count as code."""
    lowered = language.lower()
    return lowered in DOCS_CODE_LANGUAGES or lowered == DEFAULT_CODE_BLOCK_LANGUAGE


def _dedent(code: str, indent: str) -> str:
    """Strip the fence's indentation from each content line."""
    if not indent:
        return code
    return ''.join(
        line[len(indent):] if line.startswith(indent) else line.lstrip(' \t')
        for line in code.splitlines(keepends=True)
    )


def extract_code_blocks(content: str) -> list[CodeBlockInfo]:
    """
    Extract fenced code blocks with their language.

    Backtick and tilde fences are recognized at any indentation, so
    examples inside list items are found; their content is dedented.

    Args:
        content: Markdown content as a string

    Returns:
        list: [{'language': 'ts', 'code': '...', 'start_line': 10, 'end_line': 15}, ...]
        where start_line is the opening fence line
    """
    blocks = []

    for match in MARKDOWN_FENCED_CODE_BLOCK.finditer(content):
        start_line = content[:match.start()].count('\n') + 1
        end_line = content[:match.end()].count('\n') + 1

        blocks.append({
            'language': match.group('language') or DEFAULT_CODE_BLOCK_LANGUAGE,
            'code': _dedent(match.group('code'), match.group('indent')),
            'start_line': start_line,
            'end_line': end_line,
        })

    return blocks


def extract_imports(code: str) -> list[str]:
    """
    Names bound by import statements, in first-seen order.

    ``import { a as b }`` yields ``a``: the exported name, not the alias.
    """
    names: dict[str, None] = {}

    for match in CODE_NAMED_IMPORT.finditer(code):
        for specifier in match.group(1).split(','):
            name = specifier.strip().split(' as ')[0].strip()
            if name.startswith('type '):
                name = name[5:].strip()
            if name:
                names.setdefault(name, None)

    for pattern in (CODE_DEFAULT_IMPORT, CODE_NAMESPACE_IMPORT):
        for match in pattern.finditer(code):
            names.setdefault(match.group(1), None)

    return list(names)


def extract_function_calls(code: str) -> list[str]:
    """Distinct callee names of plain and ``new`` calls, keywords excluded."""
    calls: dict[str, None] = {}
    for match in CODE_CALL_SITE.finditer(code):
        name = match.group(2)
        if len(name) < MIN_IDENTIFIER_LENGTH or name in EXAMPLE_BUILTINS:
            continue
        calls.setdefault(name, None)
    return list(calls)


def extract_method_calls(code: str) -> list[MethodCall]:
    """
    Every ``.name(`` call site with its 0-based line within the block.

    Returns:
        list: [{'name': 'run', 'line': 2, 'context': 'client.run()'}, ...]
    """
    calls = []
    lines = code.splitlines()
    for match in CODE_METHOD_CALL.finditer(code):
        line = code[:match.start()].count('\n')
        calls.append({
            'name': match.group(1),
            'line': line,
            'context': lines[line].strip() if line < len(lines) else '',
        })
    return calls


# =============================================================================
# Markdown files
# =============================================================================

@dataclass(frozen=True)
class MarkdownFile:
    """A documentation file and its scannable code blocks."""
    path: str
    content: str

    @cached_property
    def code_blocks(self) -> list[CodeBlockInfo]:
        return [b for b in extract_code_blocks(self.content) if is_code_language(b['language'])]


def _coerce(item: Any) -> MarkdownFile:
    if isinstance(item, MarkdownFile):
        return item
    if isinstance(item, dict):
        return MarkdownFile(path=str(item['path']), content=item.get('content') or '')
    path, content = item
    return MarkdownFile(path=str(path), content=content)


def parse_markdown_files(files: Iterable[Any]) -> list[MarkdownFile]:
    """Accept MarkdownFile objects, {path, content} dicts or (path, content) pairs."""
    return [_coerce(item) for item in files]


def _read_text(path: Path) -> Optional[str]:
    """UTF-8 with latin-1 fallback; unreadable files give None."""
    for encoding in ('utf-8', 'latin-1'):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            logger.debug("%s decode failed for %s", encoding, path)
        except (FileNotFoundError, PermissionError, IsADirectoryError) as e:
            logger.warning("%s: %s", type(e).__name__, path)
            return None
    return None


def _iter_markdown_paths(directory: Path) -> Iterator[Path]:
    for path in sorted(directory.rglob('*')):
        if any(part in DEFAULT_IGNORE_DIRS for part in path.relative_to(directory).parts):
            continue
        if path.is_file() and path.suffix.lower() in MARKDOWN_EXTENSIONS:
            yield path


def load_markdown_dir(directory: Path | str) -> list[MarkdownFile]:
    """
    Read every Markdown file under a directory.

    Paths are reported relative to the directory, with forward slashes.
    """
    directory = Path(directory)
    files = []
    for path in _iter_markdown_paths(directory):
        content = _read_text(path)
        if content is None:
            continue
        files.append(MarkdownFile(path=path.relative_to(directory).as_posix(), content=content))
    logger.debug("Loaded %d markdown files from %s", len(files), directory)
    return files
