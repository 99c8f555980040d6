"""Tests for rendering document records into a static site."""

import os
import tempfile
import unittest

from bs4 import BeautifulSoup

from exporters import SiteBuildError, SiteBuilder, prefix_url
from models import DocumentRecord, DriveEntry, MimeType
from sample_data import make_config


def record(doc_id, title, path, html='<p>Body</p>', folders=()):
    return DocumentRecord(
        id=doc_id,
        title=title,
        path=path,
        tree=[DriveEntry(f'f-{name}', name, MimeType.FOLDER) for name in folders],
        markup=BeautifulSoup(html, 'lxml'),
        html=html,
    )


class TestPrefixUrl(unittest.TestCase):
    def test_root_prefix(self):
        self.assertEqual(prefix_url('/guide/', '/'), '/guide/')

    def test_sub_path_prefix(self):
        self.assertEqual(prefix_url('/guide/', '/docs/'), '/docs/guide/')
        self.assertEqual(prefix_url('/', '/docs'), '/docs/')

    def test_non_root_relative_urls_unchanged(self):
        self.assertEqual(prefix_url('https://example.com/', '/docs/'), 'https://example.com/')
        self.assertEqual(prefix_url('#top', '/docs/'), '#top')
        self.assertEqual(prefix_url('//cdn.example.com/x', '/docs/'), '//cdn.example.com/x')


class TestSiteBuilder(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config = make_config(self.tmp.name)
        self.output = self.config['site']['output_directory']

    def tearDown(self):
        self.tmp.cleanup()

    def _read(self, *parts):
        with open(os.path.join(self.output, *parts), 'r', encoding='utf-8') as f:
            return f.read()

    def test_pages_written_at_path(self):
        records = [
            record('d1', 'My Doc', 'my-doc', '<p>Hello</p>'),
            record('d2', 'Other', 's/other', '<h2>Other</h2>', folders=['S']),
        ]

        stats = SiteBuilder(self.config).export(records)

        self.assertEqual(stats['pages_written'], 2)
        self.assertTrue(stats['index_written'])
        page = self._read('my-doc', 'index.html')
        self.assertIn('<title>My Doc | Documentation</title>', page)
        self.assertIn('<p>Hello</p>', page)
        nested = self._read('s', 'other', 'index.html')
        self.assertIn('<h2>Other</h2>', nested)
        self.assertIn('<p class="breadcrumbs">S</p>', nested)

    def test_navigation_lists_every_page(self):
        records = [record('d1', 'One', 'one'), record('d2', 'Two', 'two')]
        SiteBuilder(self.config).export(records)

        page = self._read('one', 'index.html')
        self.assertIn('href="/one/"', page)
        self.assertIn('href="/two/"', page)

    def test_path_prefix_applies_to_links(self):
        self.config['site']['path_prefix'] = '/handbook/'
        SiteBuilder(self.config).export([record('d1', 'One', 'one')])

        page = self._read('one', 'index.html')
        self.assertIn('href="/handbook/one/"', page)
        self.assertIn('href="/handbook/"', page)

    def test_titles_are_escaped(self):
        SiteBuilder(self.config).export([record('d1', 'Q&A <draft>', 'q-a-draft')])
        page = self._read('q-a-draft', 'index.html')
        self.assertIn('Q&amp;A &lt;draft&gt;', page)

    def test_index_includes_readme(self):
        with open(self.config['site']['readme'], 'w', encoding='utf-8') as f:
            f.write('# Welcome\n\nRead the *guides*.\n')

        stats = SiteBuilder(self.config).export([record('d1', 'One', 'one')])

        index = self._read('index.html')
        self.assertTrue(stats['readme_included'])
        self.assertIn('<h1>Welcome</h1>', index)
        self.assertIn('<em>guides</em>', index)
        self.assertIn('href="/one/"', index)

    def test_index_without_readme(self):
        stats = SiteBuilder(self.config).export([])
        self.assertFalse(stats['readme_included'])
        self.assertIn('<h1>Documentation</h1>', self._read('index.html'))

    def test_duplicate_paths_fail_before_writing(self):
        records = [record('d1', 'Setup', 'guide/setup'), record('d2', 'Setup', 'guide/setup')]

        with self.assertRaises(SiteBuildError) as ctx:
            SiteBuilder(self.config).export(records)

        self.assertIn('guide/setup', str(ctx.exception))
        self.assertFalse(os.path.exists(os.path.join(self.output, 'guide')))

    def test_empty_path_collides_with_index(self):
        with self.assertRaises(SiteBuildError):
            SiteBuilder(self.config).export([record('d1', 'Untitled', '')])

    def test_output_dir_override(self):
        other = os.path.join(self.tmp.name, 'public')
        builder = SiteBuilder(self.config, output_dir=other)
        builder.export([record('d1', 'One', 'one')])
        self.assertTrue(os.path.exists(os.path.join(other, 'one', 'index.html')))


if __name__ == '__main__':
    unittest.main()
