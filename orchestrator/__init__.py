"""
Orchestration package for coordinating site build phases.

This package walks the Drive folder tree into document records and sequences
the build phases: Collect -> Render -> Report.
"""

from .build_orchestrator import SiteBuildOrchestrator, format_report, save_report
from .collector import RecursiveCollector, build_collector, load_documents, site_path

__all__ = [
    'SiteBuildOrchestrator',
    'RecursiveCollector',
    'build_collector',
    'load_documents',
    'site_path',
    'format_report',
    'save_report'
]
