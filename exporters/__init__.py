"""Export package for turning converted documents into a static site.

Package Structure:
- image_localizer: Downloads document images and rewrites them to local asset URLs
- site_builder: Renders document records into <path>/index.html pages plus an index

Configuration Referenced:
- images.output_directory, images.url_path, images.format, images.max_workers
- site.output_directory, site.path_prefix, site.title, site.readme
"""

from .image_localizer import ImageDownloadError, ImageLocalizer
from .site_builder import SiteBuildError, SiteBuilder, prefix_url

__all__ = [
    'ImageLocalizer',
    'ImageDownloadError',
    'SiteBuilder',
    'SiteBuildError',
    'prefix_url'
]
