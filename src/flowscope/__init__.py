"""
flowscope - quality scanner for Node-RED function nodes and runtime health monitor.

Detects debugging residue in function-node source, scores and grades each
node, rolls scores up per flow, and samples process health to raise alerts
on sustained threshold breaches.
"""

__version__ = "0.1.0"

from .aggregation import aggregate_flow, summarize_flows
from .config import AnalyzerConfig, load_config
from .detection import Issue, IssueType, Severity, detect_traits, node_quality_score, quality_grade
from .service import AnalyzerService

__all__ = [
    "detect_traits",  # Main entry point for one unit of source
    "node_quality_score",
    "quality_grade",
    "aggregate_flow",
    "summarize_flows",
    "AnalyzerConfig",
    "AnalyzerService",
    "Issue",
    "IssueType",
    "Severity",
    "load_config",
]
