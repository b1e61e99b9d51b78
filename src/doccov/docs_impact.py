"""
Find documentation code samples affected by an API change.

Scans fenced code blocks in Markdown for whole-word mentions of removed or
breaking exports, and for ``.member(`` calls of changed members. Matching
is textual, so a hit means "a human should look here", never "this is
definitely broken".
"""
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from doccov.markdown import MarkdownFile, extract_method_calls, parse_markdown_files
from doccov.patterns import word_pattern

if TYPE_CHECKING:
    from doccov.diff.differ import SpecDiff
    from doccov.diff.members import MemberChange

logger = logging.getLogger(__name__)

_MEMBER_CHANGE_TYPES = {
    "removed": "method-removed",
    "signature-changed": "method-changed",
    "visibility-changed": "method-changed",
}


@dataclass(frozen=True)
class DocsImpactReference:
    """One place in the docs that mentions a changed export or member."""
    file: str
    line: int
    export_name: str
    change_type: str
    member_name: Optional[str] = None
    suggestion: Optional[str] = None
    context: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "line": self.line,
            "exportName": self.export_name,
            "changeType": self.change_type,
            "memberName": self.member_name,
            "suggestion": self.suggestion,
            "context": self.context,
        }


@dataclass(frozen=True)
class DocsImpact:
    """All impacted references in one file."""
    file: str
    references: tuple[DocsImpactReference, ...] = ()

    def to_dict(self) -> dict:
        return {"file": self.file, "references": [r.to_dict() for r in self.references]}


@dataclass(frozen=True)
class DocsImpactStats:
    files_scanned: int = 0
    code_blocks_found: int = 0
    references_found: int = 0
    impacted_references: int = 0

    def to_dict(self) -> dict:
        return {
            "filesScanned": self.files_scanned,
            "codeBlocksFound": self.code_blocks_found,
            "referencesFound": self.references_found,
            "impactedReferences": self.impacted_references,
        }


@dataclass(frozen=True)
class DocsImpactResult:
    impacted_files: tuple[DocsImpact, ...] = ()
    missing_docs: tuple[str, ...] = ()
    stats: DocsImpactStats = field(default_factory=DocsImpactStats)

    @property
    def has_impact(self) -> bool:
        return bool(self.impacted_files or self.missing_docs)

    @property
    def references(self) -> list[DocsImpactReference]:
        return [r for impact in self.impacted_files for r in impact.references]

    def to_dict(self) -> dict:
        return {
            "impactedFiles": [f.to_dict() for f in self.impacted_files],
            "missingDocs": list(self.missing_docs),
            "stats": self.stats.to_dict(),
        }


def _member_index(changes: Iterable["MemberChange"]) -> dict[str, list["MemberChange"]]:
    """Member changes that can break a call site, keyed by member name."""
    index: dict[str, list] = {}
    for change in changes:
        if change.change_type not in _MEMBER_CHANGE_TYPES:
            continue
        if change.change_type == "visibility-changed" and not change.breaking:
            continue
        index.setdefault(change.member_name, []).append(change)
    return index


class _Collector:
    """Accumulates references per file, dropping duplicates."""

    def __init__(self):
        self._by_file: dict[str, list[DocsImpactReference]] = {}
        self._seen: set[tuple] = set()

    def add(self, ref: DocsImpactReference) -> None:
        key = (ref.file, ref.line, ref.export_name, ref.member_name, ref.change_type)
        if key in self._seen:
            return
        self._seen.add(key)
        self._by_file.setdefault(ref.file, []).append(ref)

    def impacts(self) -> tuple[DocsImpact, ...]:
        return tuple(DocsImpact(file, tuple(refs)) for file, refs in self._by_file.items())

    def __len__(self) -> int:
        return len(self._seen)


def _scan_file(
    md: MarkdownFile,
    targets: dict[str, tuple[re.Pattern, str]],
    members: dict[str, list["MemberChange"]],
    collector: _Collector,
) -> None:
    for block in md.code_blocks:
        first_line = block['start_line'] + 1
        for offset, text in enumerate(block['code'].splitlines()):
            for name, (pattern, change_type) in targets.items():
                if pattern.search(text):
                    collector.add(DocsImpactReference(
                        file=md.path,
                        line=first_line + offset,
                        export_name=name,
                        change_type=change_type,
                        context=text.strip(),
                    ))

        for call in extract_method_calls(block['code']):
            for change in members.get(call['name'], ()):
                collector.add(DocsImpactReference(
                    file=md.path,
                    line=first_line + call['line'],
                    export_name=change.class_name,
                    change_type=_MEMBER_CHANGE_TYPES[change.change_type],
                    member_name=change.member_name,
                    suggestion=change.suggestion,
                    context=call['context'],
                ))


def _mentions(files: list[MarkdownFile], names: Iterable[str]) -> dict[str, int]:
    """Count of code lines mentioning each name."""
    patterns = {name: word_pattern(name) for name in names}
    counts = dict.fromkeys(patterns, 0)
    for md in files:
        for block in md.code_blocks:
            for text in block['code'].splitlines():
                for name, pattern in patterns.items():
                    if pattern.search(text):
                        counts[name] += 1
    return counts


def analyze_docs_impact(diff: "SpecDiff", markdown_files: Iterable) -> DocsImpactResult:
    """
    Locate doc code samples affected by a spec diff.

    Args:
        diff: The spec diff (breaking, removed, added and member changes are used)
        markdown_files: MarkdownFile objects or {path, content} dicts

    Returns:
        DocsImpactResult with references grouped by file, added exports
        never shown in a code sample, and scan statistics
    """
    files = parse_markdown_files(markdown_files)
    removed = set(diff.removed)
    targets = {
        name: (word_pattern(name), "removed" if name in removed else "signature-changed")
        for name in diff.breaking
    }
    members = _member_index(diff.member_changes)

    collector = _Collector()
    for md in files:
        _scan_file(md, targets, members, collector)

    mentions = _mentions(files, [*diff.breaking, *diff.added])
    missing = tuple(name for name in diff.added if mentions.get(name, 0) == 0)
    stats = DocsImpactStats(
        files_scanned=len(files),
        code_blocks_found=sum(len(md.code_blocks) for md in files),
        references_found=sum(mentions.values()),
        impacted_references=len(collector),
    )
    logger.debug(
        "Docs impact: %d references in %d files, %d added exports undocumented",
        stats.impacted_references, len(collector.impacts()), len(missing),
    )
    return DocsImpactResult(
        impacted_files=collector.impacts(),
        missing_docs=missing,
        stats=stats,
    )
