"""Converter from Google Docs API JSON to a semantic HTML tree."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, NavigableString, PageElement, Tag

logger = logging.getLogger('gdocs_site.converters.document')


class ConversionError(Exception):
    """Raised when a document payload cannot be converted."""
    pass


NAMED_STYLE_TAGS = {
    'TITLE': ('h1', 'title'),
    'SUBTITLE': ('p', 'subtitle'),
    'HEADING_1': ('h1', None),
    'HEADING_2': ('h2', None),
    'HEADING_3': ('h3', None),
    'HEADING_4': ('h4', None),
    'HEADING_5': ('h5', None),
    'HEADING_6': ('h6', None),
    'NORMAL_TEXT': ('p', None),
}

ORDERED_GLYPH_TYPES = {
    'DECIMAL', 'ZERO_DECIMAL', 'UPPER_ALPHA', 'ALPHA', 'UPPER_ROMAN', 'ROMAN'
}

# Nesting order of inline formatting, outermost first
TEXT_STYLE_TAGS = [
    ('bold', 'strong'),
    ('italic', 'em'),
    ('strikethrough', 's'),
    ('underline', 'u'),
]

VERTICAL_TAB = '\u000b'


class DocumentConverter:
    """Transforms a Docs API document resource into HTML.

    The tree is a BeautifulSoup fragment with block elements at the top
    level (no html/body wrapper), serialized with the html5 formatter.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('gdocs_site.converters.document')

    def convert(self, document: Dict[str, Any]) -> Tuple[BeautifulSoup, str]:
        """Convert a document and return both the tree and its HTML."""
        tree = self.to_tree(document)
        return tree, self.to_html(tree)

    def to_tree(self, document: Dict[str, Any]) -> BeautifulSoup:
        """
        Build the semantic tree for a document.

        Args:
            document: Docs API document resource

        Returns:
            BeautifulSoup fragment

        Raises:
            ConversionError: If the payload is not a document resource
        """
        if not isinstance(document, dict):
            raise ConversionError(f"Expected a document object, got {type(document).__name__}")

        body = self._find_body(document)
        if body is None:
            raise ConversionError(
                f"Document {document.get('documentId', '?')} has no body content"
            )

        soup = BeautifulSoup('', 'lxml')
        context = _ConversionContext(soup, document)

        try:
            self._append_content(context, soup, body.get('content', []))
            self._append_footnotes(context, soup)
        except (KeyError, TypeError, AttributeError) as e:
            raise ConversionError(
                f"Malformed content in document {document.get('documentId', '?')}: {e}"
            ) from e

        self.logger.debug(
            f"Converted document {document.get('documentId', '?')} "
            f"({len(soup.find_all('img'))} images, {len(context.footnote_order)} footnotes)"
        )
        return soup

    @staticmethod
    def to_html(tree: BeautifulSoup) -> str:
        """Serialize a tree to an HTML string."""
        return tree.decode(formatter='html5')

    @staticmethod
    def _find_body(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        body = document.get('body')
        if body is not None:
            return body

        # Documents fetched with includeTabsContent carry content per tab
        for tab in document.get('tabs') or []:
            document_tab = tab.get('documentTab') or {}
            if 'body' in document_tab:
                return document_tab['body']
        return None

    def _append_content(self, context: '_ConversionContext', parent: Tag, elements: List[Dict[str, Any]]) -> None:
        """Append structural elements (paragraphs, tables, ...) to parent."""
        lists = _ListBuilder(context, parent)

        for element in elements:
            if 'paragraph' in element:
                paragraph = element['paragraph']
                if paragraph.get('bullet'):
                    item = lists.add_item(paragraph['bullet'])
                    self._append_inline(context, item, paragraph)
                    continue

                lists.close()
                block = self._convert_paragraph(context, paragraph)
                if block is not None:
                    parent.append(block)

            elif 'table' in element:
                lists.close()
                parent.append(self._convert_table(context, element['table']))

            elif 'tableOfContents' in element:
                lists.close()
                nav = context.soup.new_tag('nav', attrs={'class': 'toc'})
                self._append_content(context, nav, element['tableOfContents'].get('content', []))
                parent.append(nav)

            else:
                # sectionBreak and unknown elements carry no visible content
                lists.close()

        lists.close()

    def _convert_paragraph(self, context: '_ConversionContext', paragraph: Dict[str, Any]) -> Optional[Tag]:
        paragraph_elements = paragraph.get('elements', [])

        if any('horizontalRule' in el for el in paragraph_elements) and not _has_text(paragraph_elements):
            return context.soup.new_tag('hr')

        style = paragraph.get('paragraphStyle', {})
        tag_name, css_class = NAMED_STYLE_TAGS.get(style.get('namedStyleType', 'NORMAL_TEXT'), ('p', None))

        block = context.soup.new_tag(tag_name)
        if css_class:
            block['class'] = css_class
        if style.get('headingId'):
            block['id'] = style['headingId']

        self._append_inline(context, block, paragraph)

        if not block.contents and 'id' not in block.attrs:
            return None
        return block

    def _append_inline(self, context: '_ConversionContext', parent: Tag, paragraph: Dict[str, Any]) -> None:
        """Append the inline content of a paragraph to parent."""
        elements = paragraph.get('elements', [])
        for index, element in enumerate(elements):
            last = index == len(elements) - 1

            if 'textRun' in element:
                text_run = element['textRun']
                content = text_run.get('content', '')
                if last and content.endswith('\n'):
                    content = content[:-1]
                if content:
                    for node in self._convert_text_run(context, content, text_run.get('textStyle', {})):
                        parent.append(node)

            elif 'inlineObjectElement' in element:
                image = self._convert_inline_object(context, element['inlineObjectElement'])
                if image is not None:
                    parent.append(image)

            elif 'footnoteReference' in element:
                parent.append(self._convert_footnote_reference(context, element['footnoteReference']))

            elif 'horizontalRule' in element:
                parent.append(context.soup.new_tag('hr'))

            elif 'richLink' in element:
                props = element['richLink'].get('richLinkProperties', {})
                if props.get('uri'):
                    link = context.soup.new_tag('a', href=props['uri'])
                    link.string = props.get('title') or props['uri']
                    parent.append(link)

    def _convert_text_run(self, context: '_ConversionContext', content: str, text_style: Dict[str, Any]) -> List[PageElement]:
        """Return the nodes for one text run, wrapped in its formatting tags."""
        soup = context.soup

        # Soft line breaks arrive as vertical tabs inside a run
        nodes: List[PageElement] = []
        for index, piece in enumerate(content.split(VERTICAL_TAB)):
            if index:
                nodes.append(soup.new_tag('br'))
            if piece:
                nodes.append(NavigableString(piece))

        link = text_style.get('link')
        wrappers: List[Tuple[str, Dict[str, str]]] = []

        href = self._link_href(link) if link else None
        if href:
            wrappers.append(('a', {'href': href}))

        for style_key, tag_name in TEXT_STYLE_TAGS:
            if not text_style.get(style_key):
                continue
            if style_key == 'underline' and link:
                continue
            wrappers.append((tag_name, {}))

        offset = text_style.get('baselineOffset')
        if offset == 'SUPERSCRIPT':
            wrappers.append(('sup', {}))
        elif offset == 'SUBSCRIPT':
            wrappers.append(('sub', {}))

        for tag_name, attrs in reversed(wrappers):
            wrapper = soup.new_tag(tag_name, attrs=attrs)
            for node in nodes:
                wrapper.append(node)
            nodes = [wrapper]

        return nodes

    @staticmethod
    def _link_href(link: Dict[str, Any]) -> Optional[str]:
        if link.get('url'):
            return link['url']
        if link.get('headingId'):
            return f"#{link['headingId']}"
        if link.get('bookmarkId'):
            return f"#{link['bookmarkId']}"
        return None

    def _convert_inline_object(self, context: '_ConversionContext', element: Dict[str, Any]) -> Optional[Tag]:
        object_id = element.get('inlineObjectId')
        inline_object = context.inline_objects.get(object_id)
        if inline_object is None:
            self.logger.warning(f"Inline object {object_id} not found in document")
            return None

        embedded = inline_object.get('inlineObjectProperties', {}).get('embeddedObject', {})
        image_properties = embedded.get('imageProperties') or {}
        src = image_properties.get('contentUri') or image_properties.get('sourceUri')
        if not src:
            self.logger.debug(f"Inline object {object_id} is not an image, skipping")
            return None

        image = context.soup.new_tag('img', src=src)
        image['alt'] = embedded.get('description') or embedded.get('title') or ''
        if embedded.get('title'):
            image['title'] = embedded['title']
        return image

    def _convert_footnote_reference(self, context: '_ConversionContext', reference: Dict[str, Any]) -> Tag:
        footnote_id = reference.get('footnoteId', '')
        if footnote_id not in context.footnote_order:
            context.footnote_order.append(footnote_id)
        number = reference.get('footnoteNumber') or str(context.footnote_order.index(footnote_id) + 1)

        sup = context.soup.new_tag('sup')
        link = context.soup.new_tag('a', href=f"#fn-{footnote_id}", id=f"fnref-{footnote_id}")
        link.string = number
        sup.append(link)
        return sup

    def _append_footnotes(self, context: '_ConversionContext', parent: Tag) -> None:
        if not context.footnote_order:
            return

        section = context.soup.new_tag('section', attrs={'class': 'footnotes'})
        ordered = context.soup.new_tag('ol')
        for footnote_id in context.footnote_order:
            item = context.soup.new_tag('li', id=f"fn-{footnote_id}")
            footnote = context.footnotes.get(footnote_id, {})
            self._append_content(context, item, footnote.get('content', []))
            ordered.append(item)
        section.append(ordered)
        parent.append(section)

    def _convert_table(self, context: '_ConversionContext', table: Dict[str, Any]) -> Tag:
        soup = context.soup
        table_tag = soup.new_tag('table')
        tbody = soup.new_tag('tbody')

        for row in table.get('tableRows', []):
            tr = soup.new_tag('tr')
            for cell in row.get('tableCells', []):
                td = soup.new_tag('td')
                cell_style = cell.get('tableCellStyle', {})
                if cell_style.get('columnSpan', 1) > 1:
                    td['colspan'] = str(cell_style['columnSpan'])
                if cell_style.get('rowSpan', 1) > 1:
                    td['rowspan'] = str(cell_style['rowSpan'])
                self._append_content(context, td, cell.get('content', []))
                tr.append(td)
            tbody.append(tr)

        table_tag.append(tbody)
        return table_tag


class _ConversionContext:
    """Per-document lookup tables shared by the conversion helpers."""

    def __init__(self, soup: BeautifulSoup, document: Dict[str, Any]):
        self.soup = soup
        self.lists: Dict[str, Any] = document.get('lists') or {}
        self.inline_objects: Dict[str, Any] = document.get('inlineObjects') or {}
        self.footnotes: Dict[str, Any] = document.get('footnotes') or {}
        self.footnote_order: List[str] = []

    def is_ordered(self, list_id: str, level: int) -> bool:
        nesting_levels = (
            self.lists.get(list_id, {})
            .get('listProperties', {})
            .get('nestingLevels', [])
        )
        if level >= len(nesting_levels):
            return False
        return nesting_levels[level].get('glyphType') in ORDERED_GLYPH_TYPES


class _ListBuilder:
    """Groups consecutive bulleted paragraphs into nested ul/ol elements."""

    def __init__(self, context: _ConversionContext, parent: Tag):
        self.context = context
        self.parent = parent
        self.list_id: Optional[str] = None
        self.stack: List[Tag] = []

    def add_item(self, bullet: Dict[str, Any]) -> Tag:
        """Open the list structure for a bullet and return its new li."""
        list_id = bullet.get('listId')
        level = bullet.get('nestingLevel', 0)

        if list_id != self.list_id:
            self.close()
            self.list_id = list_id

        while len(self.stack) > level + 1:
            self.stack.pop()

        while len(self.stack) < level + 1:
            depth = len(self.stack)
            list_tag = self.context.soup.new_tag('ol' if self.context.is_ordered(list_id, depth) else 'ul')
            if self.stack:
                owner = self.stack[-1].find_all('li', recursive=False)
                if owner:
                    owner[-1].append(list_tag)
                else:
                    wrapper = self.context.soup.new_tag('li')
                    wrapper.append(list_tag)
                    self.stack[-1].append(wrapper)
            else:
                self.parent.append(list_tag)
            self.stack.append(list_tag)

        item = self.context.soup.new_tag('li')
        self.stack[-1].append(item)
        return item

    def close(self) -> None:
        self.list_id = None
        self.stack = []


def _has_text(elements: List[Dict[str, Any]]) -> bool:
    for element in elements:
        content = element.get('textRun', {}).get('content', '')
        if content.strip():
            return True
    return False


__all__ = ['DocumentConverter', 'ConversionError']
