"""
doccov - Documentation coverage and API change analysis for packages.

Scores how well a package's exported API is documented, detects drift
between docs and declarations, classifies API changes between versions,
and tracks coverage over time.
"""

__version__ = "0.1.0"

# Errors
from doccov.errors import (
    DocCovError,
    MalformedSpec,
    RetrievalTimeout,
    NotFound,
    ConfigError,
)

# Models
from doccov.models import (
    ExportKind,
    MemberKind,
    Visibility,
    Tag,
    SourceLocation,
    TypeParameter,
    Parameter,
    Returns,
    Signature,
    Member,
    ExportSymbol,
    TypeDefinition,
    PackageMeta,
    PackageSpec,
)

# Core functionality
from doccov.graph import ExportRegistry
from doccov.quality import QualityEngine, AggregateQualityResult, evaluate_quality
from doccov.drift import DriftIssue, detect_spec_drift
from doccov.diff import SpecDiff, diff_specs, calculate_next_version
from doccov.docs_impact import DocsImpactResult, analyze_docs_impact
from doccov.history import CoverageSnapshot, compute_snapshot, analyze_trends
from doccov.cache import ResultCache
from doccov.pipeline import FullDiffResult, compute_full_diff

# I/O
from doccov.serializer import load_spec, save_spec, content_hash
from doccov.config import DocCovConfig, load_config

__all__ = [
    # Version
    "__version__",
    # Errors
    "DocCovError",
    "MalformedSpec",
    "RetrievalTimeout",
    "NotFound",
    "ConfigError",
    # Enums
    "ExportKind",
    "MemberKind",
    "Visibility",
    # Models
    "Tag",
    "SourceLocation",
    "TypeParameter",
    "Parameter",
    "Returns",
    "Signature",
    "Member",
    "ExportSymbol",
    "TypeDefinition",
    "PackageMeta",
    "PackageSpec",
    # Graph
    "ExportRegistry",
    # Quality
    "QualityEngine",
    "AggregateQualityResult",
    "evaluate_quality",
    # Drift
    "DriftIssue",
    "detect_spec_drift",
    # Diff
    "SpecDiff",
    "diff_specs",
    "calculate_next_version",
    "DocsImpactResult",
    "analyze_docs_impact",
    # History
    "CoverageSnapshot",
    "compute_snapshot",
    "analyze_trends",
    # Cache & pipeline
    "ResultCache",
    "FullDiffResult",
    "compute_full_diff",
    # I/O
    "load_spec",
    "save_spec",
    "content_hash",
    "DocCovConfig",
    "load_config",
]
