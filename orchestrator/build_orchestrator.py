"""
Build orchestrator for coordinating the site generation pipeline.

This module sequences the build phases: Collect -> Render -> Report. Errors in
any phase propagate to the caller; nothing is written for a failed collection.
"""

import asyncio
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from exporters import SiteBuilder
from logger import log_section
from models import DocumentRecord
from orchestrator.collector import RecursiveCollector, build_collector


class SiteBuildOrchestrator:
    """Central coordinator sequencing the build phases: Collect -> Render -> Report."""

    def __init__(
        self,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None,
        collector: Optional[RecursiveCollector] = None,
        site_builder: Optional[SiteBuilder] = None
    ):
        """
        Initialize build orchestrator.

        Args:
            config: Validated configuration dictionary
            logger: Optional logger instance
            collector: Optional pre-wired collector (built from config if omitted)
            site_builder: Optional site builder (built from config if omitted)
        """
        self.config = config
        self.logger = logger or logging.getLogger('gdocs_site.orchestrator')
        self.collector = collector or build_collector(config, self.logger)
        self.site_builder = site_builder or SiteBuilder(config, logger=self.logger)
        self.records: List[DocumentRecord] = []

    def build(self, dry_run: bool = False) -> Dict[str, Any]:
        """
        Run the complete build.

        Args:
            dry_run: Collect documents and images but do not render pages

        Returns:
            Build report dictionary
        """
        folder_id = self.config.get('drive', {}).get('folder_id')
        if not folder_id:
            raise ValueError("drive.folder_id is not configured")

        start_time = time.time()
        phase_stats: Dict[str, Any] = {}

        try:
            log_section("Phase 1: Collecting Documents")
            phase_start = time.time()
            self.records = asyncio.run(self.collector.collect(folder_id))
            phase_stats['collect'] = {
                **self.collector.stats,
                'duration': time.time() - phase_start
            }
            self.logger.info(f"Collected {len(self.records)} document(s) from folder {folder_id}")

            if dry_run:
                self.logger.info("Dry run: skipping page rendering")
            else:
                log_section("Phase 2: Rendering Site")
                phase_start = time.time()
                export_stats = self.site_builder.export(self.records)
                export_stats['duration'] = time.time() - phase_start
                phase_stats['render'] = export_stats
        finally:
            self.collector.document_fetcher.client.close()

        duration = time.time() - start_time
        report = self._generate_report(phase_stats, duration, dry_run)
        self.logger.info(f"Build complete in {duration:.2f}s")
        return report

    def _generate_report(self, phase_stats: Dict[str, Any], duration: float, dry_run: bool) -> Dict[str, Any]:
        cache_manager = self.collector.document_fetcher.cache_manager
        api_calls = self.collector.folder_lister.api_calls + self.collector.document_fetcher.api_calls
        return {
            'summary': {
                'documents': len(self.records),
                'images': sum(len(record.images) for record in self.records),
                'pages_written': phase_stats.get('render', {}).get('pages_written', 0),
                'api_calls': api_calls,
                'duration': duration,
                'dry_run': dry_run
            },
            'phases': phase_stats,
            'cache': cache_manager.get_stats(),
            'documents': [
                {'id': record.id, 'title': record.title, 'path': record.path, 'images': len(record.images)}
                for record in self.records
            ],
            'timestamp': datetime.now().isoformat()
        }


def format_report(report: Dict[str, Any]) -> str:
    """Format a build report for console display."""
    summary = report.get('summary', {})
    cache = report.get('cache', {})
    lines = [
        "=== Build Report ===",
        f"Documents: {summary.get('documents', 0)}",
        f"Images: {summary.get('images', 0)}",
        f"Pages written: {summary.get('pages_written', 0)}",
        f"API calls: {summary.get('api_calls', 0)}",
        f"Cache: {cache.get('hits', 0)} hits, {cache.get('misses', 0)} misses",
        f"Duration: {summary.get('duration', 0.0):.2f}s",
    ]
    if summary.get('dry_run'):
        lines.append("(dry run: no pages rendered)")
    return "\n".join(lines)


def save_report(report: Dict[str, Any], output_path: str) -> None:
    """Save a build report as JSON."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, default=str)


__all__ = ['SiteBuildOrchestrator', 'format_report', 'save_report']
