"""Tests for the recursive Drive folder collector."""

import asyncio
import os
import tempfile
import unittest
from unittest import mock

from converters import DocumentConverter
from exporters import ImageLocalizer
from fetchers import CacheManager
from google_client import GoogleApiError
from models import DriveEntry, MimeType
from orchestrator import RecursiveCollector, load_documents, site_path
from orchestrator.collector import slugify_name
from sample_data import (
    FakeDrive, document, drive_file, drive_folder, image_object, make_config, paragraph, png_bytes
)


class TestSitePath(unittest.TestCase):
    def test_root_document(self):
        entry = DriveEntry('d', 'My Doc', MimeType.DOCUMENT)
        self.assertEqual(site_path([], entry), 'my-doc')

    def test_nested_document(self):
        ancestors = [
            DriveEntry('f1', 'Team Handbook', MimeType.FOLDER),
            DriveEntry('f2', 'On-boarding & HR', MimeType.FOLDER),
        ]
        entry = DriveEntry('d', 'Café Rules!', MimeType.DOCUMENT)
        self.assertEqual(site_path(ancestors, entry), 'team-handbook/on-boarding-and-hr/cafe-rules')

    def test_ampersand_becomes_and(self):
        self.assertEqual(slugify_name('FAQ & Tips'), 'faq-and-tips')

    def test_contractions_drop_apostrophe(self):
        self.assertEqual(slugify_name("Don't Panic"), 'dont-panic')
        self.assertEqual(slugify_name("It's Here"), 'its-here')
        self.assertEqual(slugify_name("rock'n'roll"), 'rock-n-roll')

    def test_camel_case_is_split(self):
        self.assertEqual(slugify_name('GettingStarted'), 'getting-started')
        self.assertEqual(slugify_name('getHTTPResponse'), 'get-http-response')
        self.assertEqual(slugify_name('XMLHttpRequest'), 'xml-http-request')

    def test_path_uses_name_rules(self):
        ancestors = [DriveEntry('f', 'Team & Process', MimeType.FOLDER)]
        entry = DriveEntry('d', 'GettingStarted', MimeType.DOCUMENT)
        self.assertEqual(site_path(ancestors, entry), 'team-and-process/getting-started')


class TestRecursiveCollector(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config = make_config(self.tmp.name)
        self.localizer = mock.Mock()
        self.localizer.localize.return_value = []

    def tearDown(self):
        self.tmp.cleanup()

    def _collect(self, drive, folder_id='F', localizer=None):
        collector = RecursiveCollector(
            self.config,
            folder_lister=drive,
            document_fetcher=drive,
            converter=DocumentConverter(),
            image_localizer=localizer or self.localizer,
        )
        return collector, asyncio.run(collector.collect(folder_id))

    def test_document_and_subfolder(self):
        """Folder F holds "My Doc" and subfolder S holding "Other"."""
        drive = FakeDrive(
            folders={
                'F': [drive_file('D', 'My Doc'), drive_folder('S', 'S')],
                'S': [drive_file('E', 'Other')],
            },
            documents={
                'D': document(paragraph('Hello'), title='My Doc Title', document_id='D'),
                'E': document(paragraph('World'), title='Other', document_id='E'),
            },
        )

        _, records = self._collect(drive)

        self.assertEqual([r.path for r in records], ['my-doc', 's/other'])
        first, second = records
        self.assertEqual(first.title, 'My Doc Title')
        self.assertEqual(first.html, '<p>Hello</p>')
        self.assertEqual(first.tree, [])
        self.assertEqual(first.url, '/my-doc/')
        self.assertEqual(second.breadcrumbs, ['S'])
        self.assertEqual(second.content['documentId'], 'E')

    def test_sibling_folders_do_not_share_ancestors(self):
        drive = FakeDrive(
            folders={
                'F': [drive_folder('A', 'Alpha'), drive_folder('B', 'Beta')],
                'A': [drive_file('x', 'X')],
                'B': [drive_file('y', 'Y')],
            },
            documents={'x': document(paragraph('x')), 'y': document(paragraph('y'))},
        )

        _, records = self._collect(drive)

        self.assertEqual([r.path for r in records], ['alpha/x', 'beta/y'])
        self.assertEqual([f.name for f in records[1].tree], ['Beta'])

    def test_output_follows_listing_order(self):
        drive = FakeDrive(
            folders={
                'F': [
                    drive_folder('S1', 'Zeta'),
                    drive_file('d3', 'Charlie'),
                    drive_file('d1', 'Alpha'),
                    drive_folder('S2', 'Eta'),
                ],
                'S1': [drive_file('d4', 'Delta'), drive_file('d5', 'Echo')],
                'S2': [drive_file('d6', 'Foxtrot')],
            },
            documents={key: document(paragraph(key)) for key in ['d1', 'd3', 'd4', 'd5', 'd6']},
        )

        _, records = self._collect(drive)

        self.assertEqual(
            [r.path for r in records],
            ['charlie', 'alpha', 'zeta/delta', 'zeta/echo', 'eta/foxtrot']
        )

    def test_other_mime_types_are_ignored(self):
        drive = FakeDrive(
            folders={'F': [
                drive_file('d1', 'Doc'),
                drive_file('s1', 'Budget', 'application/vnd.google-apps.spreadsheet'),
                drive_file('p1', 'scan.pdf', 'application/pdf'),
            ]},
            documents={'d1': document(paragraph('body'))},
        )

        collector, records = self._collect(drive)

        self.assertEqual([r.id for r in records], ['d1'])
        self.assertEqual(collector.stats['entries_skipped'], 2)

    def test_empty_folder(self):
        drive = FakeDrive(folders={'F': []}, documents={})
        _, records = self._collect(drive)
        self.assertEqual(records, [])

    def test_folder_with_only_empty_subfolders(self):
        drive = FakeDrive(folders={'F': [drive_folder('S', 'S')], 'S': []}, documents={})
        _, records = self._collect(drive)
        self.assertEqual(records, [])
        self.assertEqual(sorted(drive.listed), ['F', 'S'])

    def test_missing_document_aborts_collection(self):
        drive = FakeDrive(
            folders={
                'F': [drive_file('ok', 'Fine'), drive_folder('S', 'S')],
                'S': [drive_file('gone', 'Deleted')],
            },
            documents={'ok': document(paragraph('fine'))},
        )

        with self.assertRaises(GoogleApiError):
            self._collect(drive)

    def test_image_failure_aborts_collection(self):
        self.localizer.localize.side_effect = RuntimeError('download failed')
        drive = FakeDrive(folders={'F': [drive_file('d', 'Doc')]}, documents={'d': document(paragraph('x'))})

        with self.assertRaises(RuntimeError):
            self._collect(drive)

    def test_images_are_localized_before_serialization(self):
        session = mock.Mock()
        session.get.return_value = mock.Mock(content=png_bytes(), headers={})
        localizer = ImageLocalizer(self.config, cache_manager=CacheManager(self.config), session=session)

        doc = document(
            paragraph({'inlineObjectElement': {'inlineObjectId': 'kix.img'}}),
            inlineObjects={'kix.img': image_object('https://example.com/x.png')},
        )
        drive = FakeDrive(folders={'F': [drive_file('d', 'Pictures')]}, documents={'d': doc})

        _, records = self._collect(drive, localizer=localizer)

        record = records[0]
        self.assertEqual(len(record.images), 1)
        asset = record.images[0]
        self.assertEqual(record.markup.find('img')['src'], asset.url)
        self.assertIn(f'src="{asset.url}"', record.html)
        self.assertNotIn('https://example.com/x.png', record.html)
        self.assertTrue(os.path.exists(asset.output_path))


class TestLoadDocuments(unittest.TestCase):
    def test_requires_folder_id(self):
        with tempfile.TemporaryDirectory() as tmp:
            config = make_config(tmp)
            config['drive']['folder_id'] = None
            with self.assertRaises(ValueError):
                asyncio.run(load_documents(config))

    @mock.patch('orchestrator.collector.build_collector')
    def test_collects_from_configured_folder(self, build_collector):
        collector = build_collector.return_value
        collector.collect = mock.AsyncMock(return_value=['record'])

        with tempfile.TemporaryDirectory() as tmp:
            config = make_config(tmp)
            result = asyncio.run(load_documents(config))

        self.assertEqual(result, ['record'])
        collector.collect.assert_awaited_once_with('root-folder')
        collector.document_fetcher.client.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
