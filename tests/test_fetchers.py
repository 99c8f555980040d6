"""Tests for the document fetcher and folder lister."""

import tempfile
import unittest
from unittest import mock

from fetchers import CacheManager, DocumentFetcher, FetcherError, FolderLister
from google_client import GoogleApiError
from models import MimeType
from sample_data import drive_file, drive_folder, make_config


class FetcherTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config = make_config(self.tmp.name)
        self.cache = CacheManager(self.config)
        self.client = mock.Mock()

    def tearDown(self):
        self.tmp.cleanup()


class TestDocumentFetcher(FetcherTestCase):
    def setUp(self):
        super().setUp()
        self.fetcher = DocumentFetcher(self.config, self.client, self.cache)

    def test_document_url(self):
        self.assertEqual(
            self.fetcher.document_url('1AbC_d-E'),
            'https://docs.googleapis.com/v1/documents/1AbC_d-E'
        )

    def test_fetch_returns_parsed_json(self):
        self.client.get_json.return_value = {'documentId': 'doc', 'title': 'Doc'}

        document = self.fetcher.fetch_document('doc')

        self.assertEqual(document['title'], 'Doc')
        self.client.get_json.assert_called_once_with('https://docs.googleapis.com/v1/documents/doc')

    def test_second_fetch_is_served_from_cache(self):
        """Two fetches of the same document yield identical content with one API call."""
        self.client.get_json.return_value = {'documentId': 'doc', 'title': 'Doc', 'revisionId': 'r1'}

        first = self.fetcher.fetch_document('doc')
        self.client.get_json.return_value = {'documentId': 'doc', 'title': 'Changed'}
        second = self.fetcher.fetch_document('doc')

        self.assertEqual(first, second)
        self.assertEqual(self.client.get_json.call_count, 1)
        self.assertEqual(self.fetcher.api_calls, 1)

    def test_disabled_cache_always_fetches(self):
        self.config['advanced']['cache']['enabled'] = False
        fetcher = DocumentFetcher(self.config, self.client, CacheManager(self.config))
        self.client.get_json.return_value = {'title': 'Doc'}

        fetcher.fetch_document('doc')
        fetcher.fetch_document('doc')

        self.assertEqual(self.client.get_json.call_count, 2)

    def test_empty_id(self):
        with self.assertRaises(ValueError):
            self.fetcher.fetch_document('  ')
        self.client.get_json.assert_not_called()

    def test_api_error_propagates_and_is_not_cached(self):
        url = self.fetcher.document_url('missing')
        self.client.get_json.side_effect = GoogleApiError('Requested entity was not found.', 404, url)

        with self.assertRaises(GoogleApiError) as ctx:
            self.fetcher.fetch_document('missing')

        self.assertEqual(ctx.exception.status, 404)
        self.assertIsNone(self.cache.get(url))


class TestFolderLister(FetcherTestCase):
    def setUp(self):
        super().setUp()
        self.lister = FolderLister(self.config, self.client, self.cache)

    def test_listing_url_encodes_parent_query(self):
        self.assertEqual(
            self.lister.listing_url('folder1'),
            'https://www.googleapis.com/drive/v3/files?q=%27folder1%27%20in%20parents'
        )

    def test_listing_url_with_shared_drives_and_page(self):
        self.config['drive']['include_shared_drives'] = True
        url = self.lister.listing_url('folder1', page_token='tok')
        self.assertTrue(url.startswith('https://www.googleapis.com/drive/v3/files?q=%27folder1%27%20in%20parents&'))
        self.assertIn('supportsAllDrives=true', url)
        self.assertIn('includeItemsFromAllDrives=true', url)
        self.assertIn('pageToken=tok', url)

    def test_entries_keep_listing_order(self):
        self.client.get_json.return_value = {'files': [
            drive_file('d1', 'Zebra'),
            drive_folder('f1', 'Archive'),
            drive_file('x1', 'Budget', 'application/vnd.google-apps.spreadsheet'),
        ]}

        entries = self.lister.list_folder('folder1')

        self.assertEqual([e.id for e in entries], ['d1', 'f1', 'x1'])
        self.assertTrue(entries[0].is_document)
        self.assertTrue(entries[1].is_folder)
        self.assertFalse(entries[2].is_document or entries[2].is_folder)
        self.assertEqual(entries[1].mime_type, MimeType.FOLDER)

    def test_follows_next_page_token(self):
        self.client.get_json.side_effect = [
            {'files': [drive_file('d1', 'One')], 'nextPageToken': 'page2'},
            {'files': [drive_file('d2', 'Two')]},
        ]

        entries = self.lister.list_folder('folder1')

        self.assertEqual([e.id for e in entries], ['d1', 'd2'])
        second_url = self.client.get_json.call_args_list[1].args[0]
        self.assertIn('pageToken=page2', second_url)

    def test_modified_time_is_parsed(self):
        item = drive_file('d1', 'One')
        item['modifiedTime'] = '2024-03-01T12:30:00.000Z'
        self.client.get_json.return_value = {'files': [item]}

        entry = self.lister.list_folder('folder1')[0]

        self.assertEqual(entry.modified_time.year, 2024)
        self.assertIsNotNone(entry.modified_time.tzinfo)

    def test_missing_files_key(self):
        self.client.get_json.return_value = {'kind': 'drive#fileList'}
        with self.assertRaises(FetcherError):
            self.lister.list_folder('folder1')

    def test_empty_folder(self):
        self.client.get_json.return_value = {'files': []}
        self.assertEqual(self.lister.list_folder('folder1'), [])

    def test_listing_is_cached(self):
        self.client.get_json.return_value = {'files': [drive_file('d1', 'One')]}
        self.lister.list_folder('folder1')
        self.lister.list_folder('folder1')
        self.assertEqual(self.client.get_json.call_count, 1)


if __name__ == '__main__':
    unittest.main()
