"""Static site builder that renders document records into HTML pages."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import markdown
from jinja2 import DictLoader, Environment, select_autoescape

from logger import ProgressTracker
from models import DocumentRecord


class SiteBuildError(Exception):
    """Raised when the site cannot be written."""
    pass


BASE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{% block title %}{{ site_title }}{% endblock %}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; margin: 0; line-height: 1.6; color: #1f2933; }
        .layout { display: flex; min-height: 100vh; }
        nav.site-nav { width: 16rem; padding: 1.5rem; background: #f5f7fa; border-right: 1px solid #e4e7eb; }
        nav.site-nav ul { list-style: none; padding: 0; }
        nav.site-nav .folder { color: #7b8794; font-size: 0.85rem; }
        main { flex: 1; max-width: 50rem; padding: 2rem 3rem; }
        img { max-width: 100%; height: auto; }
        table { border-collapse: collapse; }
        td { border: 1px solid #cbd2d9; padding: 0.4rem 0.6rem; vertical-align: top; }
        .breadcrumbs { color: #7b8794; font-size: 0.9rem; }
    </style>
</head>
<body>
<div class="layout">
    <nav class="site-nav">
        <a href="{{ '/' | url }}"><strong>{{ site_title }}</strong></a>
        <ul>
        {% for doc in docs %}
            <li>{% if doc.breadcrumbs %}<span class="folder">{{ doc.breadcrumbs | join(' / ') }} / </span>{% endif %}<a href="{{ doc.url | url }}">{{ doc.title }}</a></li>
        {% endfor %}
        </ul>
    </nav>
    <main>
    {% block content %}{% endblock %}
    </main>
</div>
</body>
</html>
"""

PAGE_TEMPLATE = """{% extends "base.html" %}
{% block title %}{{ doc.title }} | {{ site_title }}{% endblock %}
{% block content %}
{% if doc.breadcrumbs %}<p class="breadcrumbs">{{ doc.breadcrumbs | join(' / ') }}</p>{% endif %}
<article>
{{ doc.html | safe }}
</article>
{% endblock %}
"""

INDEX_TEMPLATE = """{% extends "base.html" %}
{% block content %}
{% if readme %}
<section class="readme">
{{ readme | safe }}
</section>
{% else %}
<h1>{{ site_title }}</h1>
{% endif %}
<ul class="documents">
{% for doc in docs %}
    <li><a href="{{ doc.url | url }}">{{ doc.title }}</a></li>
{% endfor %}
</ul>
<footer><small>Generated {{ generated_at }}</small></footer>
{% endblock %}
"""


def prefix_url(url: str, path_prefix: str = '/') -> str:
    """
    Apply the site path prefix to a root-relative URL.

    Args:
        url: Site-relative URL such as '/guides/setup/'
        path_prefix: Prefix the site is served under, e.g. '/docs/'

    Returns:
        Prefixed URL; absolute URLs and fragments are returned unchanged
    """
    if not url.startswith('/') or url.startswith('//'):
        return url
    prefix = '/' + path_prefix.strip('/')
    if prefix == '/':
        return url
    return prefix + url


class SiteBuilder:
    """
    Renders document records to a static HTML site.

    This builder:
    1. Checks that no two records resolve to the same page path
    2. Writes one <output>/<path>/index.html per record
    3. Writes <output>/index.html with the rendered README and a page list
    """

    def __init__(self, config: Dict[str, Any], logger: Optional[logging.Logger] = None, output_dir: Optional[str] = None):
        """
        Initialize the site builder.

        Args:
            config: Configuration dictionary with site settings
            logger: Logger instance
            output_dir: Optional output directory override (takes precedence over config)
        """
        self.config = config
        self.logger = logger or logging.getLogger('gdocs_site.exporters.site_builder')

        site_config = config.get('site', {})
        self.output_directory = Path(output_dir) if output_dir else Path(site_config.get('output_directory', './_site'))
        self.path_prefix = site_config.get('path_prefix', '/') or '/'
        self.site_title = site_config.get('title', 'Documentation')
        self.readme_path = site_config.get('readme', 'README.md')
        self.show_progress = config.get('logging', {}).get('progress_bar', True)

        self.env = Environment(
            loader=DictLoader({
                'base.html': BASE_TEMPLATE,
                'page.html': PAGE_TEMPLATE,
                'index.html': INDEX_TEMPLATE,
            }),
            autoescape=select_autoescape(['html', 'xml']),
        )
        self.env.filters['url'] = lambda value: prefix_url(value, self.path_prefix)

        self.stats = {
            'pages_written': 0,
            'index_written': False,
            'readme_included': False,
            'output_directory': str(self.output_directory)
        }

    def export(self, records: List[DocumentRecord]) -> Dict[str, Any]:
        """
        Write the whole site.

        Args:
            records: Document records in navigation order

        Returns:
            Statistics dictionary with export results

        Raises:
            SiteBuildError: If two records share a path or a page cannot be written
        """
        self.logger.info(f"Writing {len(records)} page(s) to {self.output_directory}")
        self._check_unique_paths(records)

        try:
            self.output_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SiteBuildError(f"Cannot create output directory {self.output_directory}: {e}") from e

        template = self.env.get_template('page.html')
        with ProgressTracker(len(records), item_type='pages', show_bar=self.show_progress) as tracker:
            for record in tracker.track(records):
                html = template.render(site_title=self.site_title, docs=records, doc=record)
                self._write(self.page_path(record), html)
                self.stats['pages_written'] += 1

        self._write_index(records)
        return self.stats.copy()

    def page_path(self, record: DocumentRecord) -> Path:
        """Output file for a record: <output>/<path>/index.html."""
        if record.path:
            return self.output_directory / record.path / 'index.html'
        return self.output_directory / 'index.html'

    def render_readme(self) -> Optional[str]:
        """Render the README to HTML, or None when it does not exist."""
        if not self.readme_path:
            return None
        readme = Path(self.readme_path)
        if not readme.is_file():
            self.logger.debug(f"No README at {readme}; index page will list documents only")
            return None
        text = readme.read_text(encoding='utf-8')
        return markdown.markdown(text, extensions=['tables', 'fenced_code'])

    def _write_index(self, records: List[DocumentRecord]) -> None:
        readme = self.render_readme()
        html = self.env.get_template('index.html').render(
            site_title=self.site_title,
            docs=records,
            readme=readme,
            generated_at=datetime.now().strftime('%Y-%m-%d %H:%M'),
        )
        self._write(self.output_directory / 'index.html', html)
        self.stats['index_written'] = True
        self.stats['readme_included'] = readme is not None

    def _check_unique_paths(self, records: List[DocumentRecord]) -> None:
        seen: Dict[Path, DocumentRecord] = {}
        index_path = self.output_directory / 'index.html'
        for record in records:
            path = self.page_path(record)
            if path == index_path:
                raise SiteBuildError(f"Document '{record.title}' ({record.id}) resolves to the site index")
            if path in seen:
                other = seen[path]
                raise SiteBuildError(
                    f"Documents '{other.title}' ({other.id}) and '{record.title}' ({record.id}) "
                    f"both resolve to path '{record.path}'"
                )
            seen[path] = record

    def _write(self, path: Path, html: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(html, encoding='utf-8')
        except OSError as e:
            raise SiteBuildError(f"Failed to write {path}: {e}") from e
        self.logger.debug(f"Wrote {path}")


__all__ = ['SiteBuilder', 'SiteBuildError', 'prefix_url']
