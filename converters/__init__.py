"""Converters package for turning Google Docs JSON into HTML."""

import logging

from .document_converter import ConversionError, DocumentConverter

logger = logging.getLogger('gdocs_site.converters')


def convert_document(document, logger=None):
    """
    Convenience function to convert a Docs API document to a tree and HTML.

    Args:
        document: Docs API document resource (dict)
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        Tuple of (BeautifulSoup tree, HTML string)

    Example:
        >>> from converters import convert_document
        >>> tree, html = convert_document(doc_json)
        >>> print(html)
    """
    if logger is None:
        logger = logging.getLogger('gdocs_site.converters')

    converter = DocumentConverter(logger=logger)
    return converter.convert(document)


__all__ = [
    'convert_document',
    'DocumentConverter',
    'ConversionError'
]
