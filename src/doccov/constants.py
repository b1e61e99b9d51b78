"""
Centralized constants for the doccov package.

This module contains:
- Rule, drift and diff tables shared across the analysis core
- Thresholds for coverage health, regressions and milestones
- Retention tiers and history defaults
"""

# =============================================================================
# Export Kinds
# =============================================================================

EXPORT_KINDS: frozenset[str] = frozenset({
    'function', 'class', 'interface', 'type', 'enum', 'variable',
})

MEMBER_KINDS: frozenset[str] = frozenset({
    'method', 'property', 'enum-member', 'constructor',
})

# Kinds that declare a named type usable in signatures
TYPE_LIKE_KINDS: frozenset[str] = frozenset({'class', 'interface', 'type', 'enum'})

# Kinds that can be called or constructed from example code
CALLABLE_KINDS: frozenset[str] = frozenset({'function', 'class'})

# Visibility ordering: higher is more visible
VISIBILITY_RANK: dict[str, int] = {
    'private': 0,
    'protected': 1,
    'public': 2,
}

# =============================================================================
# Schema Constants
# =============================================================================

# Primitive type names that accept any value
TOP_TYPES: frozenset[str] = frozenset({'any', 'unknown'})

# Primitive type name assignable to everything
BOTTOM_TYPE = 'never'

# Opts out of checking in both directions
ANY_TYPE = 'any'

# void and undefined are interchangeable in return positions
VOID_EQUIVALENTS: frozenset[str] = frozenset({'void', 'undefined'})

# Prefix used by extractors for type table references
TYPE_REF_PREFIX = '#/types/'

# =============================================================================
# Quality Rules
# =============================================================================

# Release tags recognised by the structural rules
RELEASE_TAGS: frozenset[str] = frozenset({'public', 'beta', 'alpha', 'internal'})

# Regex heuristics for style rules operating on raw doc text
EMPTY_RETURNS_PATTERN = r'@returns?\s*(?:\{[^}]*\})?\s*$'
TYPE_ONLY_RETURNS_PATTERN = r'@returns?\s+\{[^}]+\}\s*$'
PARAM_STYLE_PATTERN = r'@param\s+(?:\{[^}]+\}\s+)?(\S+)\s+([^@\n]+)'

# Separators accepted by consistent-param-style
PARAM_DASH_SEPARATORS: tuple[str, ...] = ('-', '–')

# =============================================================================
# Drift Detection
# =============================================================================

# Fuzzy matching threshold for finding similar names
FUZZY_MATCH_CUTOFF = 0.6

# Maximum names listed in an "Available parameters" suggestion
MAX_LISTED_PARAMETERS = 6

# Minimum identifier length considered in example code
MIN_IDENTIFIER_LENGTH = 2

DRIFT_CATEGORIES: dict[str, str] = {
    'param-mismatch': 'structural',
    'param-type-mismatch': 'structural',
    'optionality-mismatch': 'structural',
    'return-type-mismatch': 'structural',
    'generic-constraint-mismatch': 'structural',
    'deprecated-mismatch': 'semantic',
    'visibility-mismatch': 'semantic',
    'broken-link': 'semantic',
    'example-drift': 'example',
    'example-runtime-error': 'example',
}

DRIFT_SEVERITIES: dict[str, str] = {
    'param-mismatch': 'error',
    'param-type-mismatch': 'warning',
    'optionality-mismatch': 'warning',
    'return-type-mismatch': 'warning',
    'generic-constraint-mismatch': 'warning',
    'deprecated-mismatch': 'info',
    'visibility-mismatch': 'info',
    'broken-link': 'error',
    'example-drift': 'warning',
    'example-runtime-error': 'error',
}

# Drift kinds that have a deterministic doc-comment rewrite
FIXABLE_DRIFT_TYPES: frozenset[str] = frozenset({
    'param-mismatch',
    'param-type-mismatch',
    'optionality-mismatch',
    'return-type-mismatch',
    'generic-constraint-mismatch',
    'deprecated-mismatch',
    'visibility-mismatch',
})

VISIBILITY_TAGS: dict[str, str] = {
    'internal': 'internal',
    'alpha': 'internal',
    'private': 'private',
    'protected': 'protected',
    'public': 'public',
}

# Globals and keywords that example code may use without importing
EXAMPLE_BUILTINS: frozenset[str] = frozenset({
    'console', 'require', 'module', 'exports', 'async', 'await', 'function',
    'const', 'let', 'var', 'return', 'if', 'else', 'for', 'while', 'switch',
    'try', 'catch', 'finally', 'throw', 'new', 'this', 'class', 'extends',
    'import', 'export', 'default', 'true', 'false', 'null', 'undefined',
    'typeof', 'instanceof', 'interface', 'type', 'super', 'void', 'delete',
    'Array', 'Object', 'String', 'Number', 'Boolean', 'Promise', 'Symbol',
    'Map', 'Set', 'WeakMap', 'WeakSet', 'Date', 'JSON', 'Math', 'Error',
    'TypeError', 'RangeError', 'RegExp', 'BigInt', 'Intl', 'Reflect', 'Proxy',
    'URL', 'URLSearchParams', 'Buffer', 'process', 'fetch', 'Response',
    'Request', 'Headers', 'AbortController', 'TextEncoder', 'TextDecoder',
    'setTimeout', 'clearTimeout', 'setInterval', 'clearInterval',
    'parseInt', 'parseFloat', 'isNaN', 'isFinite', 'structuredClone',
    'expect', 'describe', 'it', 'test', 'assert', 'log', 'warn', 'error',
})

# =============================================================================
# Spec Diff
# =============================================================================

# Keys that only carry documentation; changes confined to them are docs-only
DOC_ONLY_KEYS: frozenset[str] = frozenset({
    'description', 'examples', 'tags', 'rawComments',
})

# Keys ignored entirely when comparing exports (declaration site moves)
IGNORED_DIFF_KEYS: frozenset[str] = frozenset({'source'})

BREAKING_SEVERITY_ORDER: dict[str, int] = {'high': 0, 'medium': 1, 'low': 2}

SEMVER_BUMPS: tuple[str, ...] = ('major', 'minor', 'patch', 'none')

# =============================================================================
# Docs Impact
# =============================================================================

# Code block languages scanned for export references
DOCS_CODE_LANGUAGES: frozenset[str] = frozenset({
    'ts', 'typescript', 'js', 'javascript', 'tsx', 'jsx', 'mjs', 'cjs',
})

# Default language for code blocks without a specified language
DEFAULT_CODE_BLOCK_LANGUAGE = 'text'

# Documentation files scanned by the docs impact analyzer
MARKDOWN_EXTENSIONS: frozenset[str] = frozenset({'.md', '.mdx', '.markdown'})

# Directories never scanned for markdown
DEFAULT_IGNORE_DIRS: frozenset[str] = frozenset({
    '.git', 'node_modules', 'dist', 'build', '.doccov', '.venv', 'venv', '__pycache__',
})

# =============================================================================
# Coverage Thresholds
# =============================================================================

# Coverage percentage thresholds for health assessment
COVERAGE_HEALTHY_THRESHOLD = 80        # >= this is "good" (green)
COVERAGE_WARNING_THRESHOLD = 50        # >= this is "okay" (yellow), below is "bad" (red)

# =============================================================================
# Trend Analysis
# =============================================================================

RETENTION_DAYS: dict[str, int] = {
    'free': 7,
    'team': 30,
    'pro': 90,
}

DEFAULT_RETENTION_TIER = 'pro'

# Snapshots kept by prune-by-count when no count is given
DEFAULT_HISTORY_KEEP = 100

# Number of scores rendered in a sparkline
SPARKLINE_LENGTH = 10
SPARKLINE_CHARS = '▁▂▃▄▅▆▇█'

# Regression detection window and minimum drop (percentage points)
REGRESSION_WINDOW = 5
REGRESSION_THRESHOLD = 3

COVERAGE_MILESTONES: tuple[int, ...] = (50, 75, 90, 100)

MAX_INSIGHTS = 5

SNAPSHOT_SOURCES: frozenset[str] = frozenset({'ci', 'manual', 'scheduled'})

# Default directory for the JSON-file snapshot store
HISTORY_DIR = '.doccov/history'

# =============================================================================
# Cache & Retrieval
# =============================================================================

# Characters of the sha256 digest kept for content hashes
CONTENT_HASH_LENGTH = 16

# Bounded wait around spec retrieval + diff
RETRIEVAL_TIMEOUT_SECONDS = 60.0

# =============================================================================
# Serialization
# =============================================================================

# Version string written into saved result files
RESULT_FILE_VERSION = "1.0"

DEFAULT_CONFIG_FILENAME = 'doccov.config.json'
