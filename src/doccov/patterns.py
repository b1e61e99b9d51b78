"""
Compiled regex patterns for doc-comment tags, example code and markdown.

All multi-part patterns use re.VERBOSE for readability and are pre-compiled.
Patterns are grouped by the module that uses them.
"""
import re

# =============================================================================
# Doc Tag Patterns (drift.tags)
# =============================================================================

PARAM_TAG = re.compile(
    r"""
    ^
    (?: \{ ([^}]+) \} \s+ )?    # optional {type} (captured)
    (\S+)                       # parameter name, maybe [bracketed] (captured)
    (?: \s+ - \s+ )?            # optional dash separator
    """,
    re.VERBOSE,
)

BRACED_TYPE = re.compile(
    r"""
    ^ \{ ([^}]+) \}             # leading {type} (captured)
    """,
    re.VERBOSE,
)

TEMPLATE_BRACED = re.compile(
    r"""
    ^ \{ ([^}]+) \} \s+         # {constraint} (captured)
    (.+) $                      # remainder: name and description (captured)
    """,
    re.VERBOSE | re.DOTALL,
)

INLINE_LINK_TAG = re.compile(
    r"""
    \{ @ (link|see|inheritDoc)  # tag kind (captured)
    \s+
    ([^}\s|]+)                  # link target (captured)
    (?: \s* \| [^}]* )?         # optional | label
    \}
    """,
    re.VERBOSE,
)

# Code removed from doc text before scanning for links
DOC_FENCED_CODE = re.compile(r"```.*?```", re.DOTALL)
DOC_INLINE_CODE = re.compile(r"`[^`]+`")

# =============================================================================
# Example Code Patterns (drift.detector)
# =============================================================================

EXAMPLE_FENCE_OPEN = re.compile(r"^```(?:ts|typescript|js|javascript)?\n?", re.IGNORECASE)
EXAMPLE_FENCE_CLOSE = re.compile(r"\n?```$")

CODE_COMMENT_OR_STRING = re.compile(
    r"""
      // [^\n]*                    # line comment
    | /\* .*? \*/                  # block comment
    | ' (?: \\. | [^'\\\n] )* '    # single-quoted string
    | " (?: \\. | [^"\\\n] )* "    # double-quoted string
    | ` (?: \\. | [^`\\] )* `      # template literal
    """,
    re.VERBOSE | re.DOTALL,
)

CODE_NAMED_IMPORT = re.compile(
    r"""
    \b import \s+
    (?: type \s+ )?             # optional 'type' modifier
    (?: [\w$]+ \s* , \s* )?     # optional default import before braces
    \{ ([^}]*) \}               # named specifiers (captured)
    """,
    re.VERBOSE,
)

CODE_DEFAULT_IMPORT = re.compile(
    r"""
    \b import \s+
    (?: type \s+ )?
    ([A-Za-z_$][\w$]*)          # default import binding (captured)
    \s* (?: , | \s from \b )
    """,
    re.VERBOSE,
)

CODE_NAMESPACE_IMPORT = re.compile(
    r"""
    \* \s* as \s+
    ([A-Za-z_$][\w$]*)          # namespace binding (captured)
    """,
    re.VERBOSE,
)

CODE_CALL_SITE = re.compile(
    r"""
    (?<! [\w$.] )               # not a member access or part of a word
    (new \s+)?                  # constructor call (captured)
    ([A-Za-z_$][\w$]*)          # callee (captured)
    \s* (?: < [^<>()]* > )?     # optional type arguments
    \s* \(
    """,
    re.VERBOSE,
)

CODE_DECLARATION = re.compile(
    r"""
    \b (?: const | let | var | function\*? | class | interface | type | enum )
    \s+
    ([A-Za-z_$][\w$]*)          # declared name (captured)
    """,
    re.VERBOSE,
)

CODE_DESTRUCTURE_DECLARATION = re.compile(
    r"""
    \b (?: const | let | var ) \s*
    [{\[] ([^}\]]*) [}\]]       # destructured bindings (captured)
    """,
    re.VERBOSE,
)

CODE_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")

# =============================================================================
# Markdown Patterns (markdown)
# =============================================================================

MARKDOWN_FENCED_CODE_BLOCK = re.compile(
    r"""
    ^(?P<indent>[ \t]*)               # list items indent their fences
    (?P<fence>`{3,}|~{3,})            # backtick or tilde fence
    [ \t]* (?P<language>[\w+-]*) [^\n]* \n
    (?P<code>(?:(?!^[ \t]*(?P=fence)).)*?)   # content, never crossing its own fence
    ^[ \t]*(?P=fence)[ \t]*$          # matching closing fence on its own line
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)

CODE_METHOD_CALL = re.compile(
    r"""
    \. \s*
    ([A-Za-z_$][\w$]*)          # method name (captured)
    \s* \(
    """,
    re.VERBOSE,
)


def word_pattern(name: str) -> re.Pattern:
    """Whole-word matcher for an identifier, treating $ as a word character."""
    return re.compile(r"(?<![\w$])" + re.escape(name) + r"(?![\w$])")
