"""Tests for the durable ingestion state file."""

import json
import os
import unittest
from unittest import mock

import pytest

from fetchers import STATE_FILENAME, StateCorruptedError, StateNotFoundError, StateStore
from models import DocumentLinks, DocumentRef, IngestionState

BASE_URL = 'https://x.atlassian.net/wiki'


def make_ref(document_id, title=None):
    return DocumentRef(
        id=document_id,
        title=title if title is not None else f"Page {document_id}",
        links=DocumentLinks(self_url=f"{BASE_URL}/rest/api/content/{document_id}", web_ui=f"/pages/{document_id}")
    )


class TestLoad:
    """Test reading the state file."""

    def test_missing_file_is_not_found(self, tmp_path):
        with pytest.raises(StateNotFoundError):
            StateStore(str(tmp_path)).load()

    def test_invalid_json_is_corrupted(self, tmp_path):
        (tmp_path / STATE_FILENAME).write_text('{"results": [', encoding='utf-8')

        with pytest.raises(StateCorruptedError):
            StateStore(str(tmp_path)).load()

    def test_non_object_is_corrupted(self, tmp_path):
        (tmp_path / STATE_FILENAME).write_text('[1, 2]', encoding='utf-8')

        with pytest.raises(StateCorruptedError):
            StateStore(str(tmp_path)).load()

    def test_initialize_fresh(self, tmp_path):
        state = StateStore(str(tmp_path), base_url=BASE_URL).load_or_initialize()

        assert state.results == []
        assert state.cursor.base_url == BASE_URL
        assert not (tmp_path / STATE_FILENAME).exists()

    def test_corrupt_file_moved_aside(self, tmp_path):
        (tmp_path / STATE_FILENAME).write_text('not json', encoding='utf-8')
        store = StateStore(str(tmp_path))

        state = store.load_or_initialize()

        assert state.results == []
        assert not (tmp_path / STATE_FILENAME).exists()
        assert (tmp_path / (STATE_FILENAME + '.corrupt')).read_text(encoding='utf-8') == 'not json'


class TestSave:
    """Test that saves fully rewrite the envelope."""

    def test_round_trip_is_lossless(self, tmp_path):
        store = StateStore(str(tmp_path), base_url=BASE_URL, context_path='/wiki')
        store.load_or_initialize()
        written = store.save([make_ref('1'), make_ref('2')], 'https://next', space_key='ENG')

        loaded = StateStore(str(tmp_path)).load()

        assert loaded == written
        assert loaded.size == 2
        assert loaded.space_cursors == {'ENG': 'https://next'}

    def test_envelope_shape(self, tmp_path):
        store = StateStore(str(tmp_path), base_url=BASE_URL, context_path='/wiki')
        store.load_or_initialize()
        store.save([make_ref('1')], '')

        with open(tmp_path / STATE_FILENAME, encoding='utf-8') as f:
            data = json.load(f)

        assert data['_links'] == {'base': BASE_URL, 'context': '/wiki', 'next': '', 'self': ''}
        assert data['size'] == 1
        assert data['start'] == 0
        assert data['results'][0]['id'] == '1'
        assert data['results'][0]['type'] == 'page'
        assert data['results'][0]['_links']['webui'] == '/pages/1'

    def test_cursor_fields_come_from_configuration(self, tmp_path):
        (tmp_path / STATE_FILENAME).write_text(json.dumps({
            '_links': {'base': 'https://old.example.com', 'context': '/old', 'next': '', 'self': ''},
            'size': 0, 'start': 0, 'results': []
        }), encoding='utf-8')
        store = StateStore(str(tmp_path), base_url=BASE_URL, context_path='/wiki')
        store.load_or_initialize()

        state = store.save([], '')

        assert state.cursor.base_url == BASE_URL
        assert state.cursor.context_path == '/wiki'

    def test_failed_write_keeps_previous_file(self, tmp_path):
        store = StateStore(str(tmp_path))
        store.load_or_initialize()
        store.save([make_ref('1')])
        before = (tmp_path / STATE_FILENAME).read_bytes()

        with mock.patch('fetchers.state_store.json.dump', side_effect=OSError('disk full')):
            with pytest.raises(OSError):
                store.save([make_ref('1'), make_ref('2')])

        assert (tmp_path / STATE_FILENAME).read_bytes() == before
        assert [p.name for p in tmp_path.iterdir()] == [STATE_FILENAME]


class TestRecordFetched:
    """Test commit-on-success bookkeeping."""

    def test_appends_and_persists(self, tmp_path):
        store = StateStore(str(tmp_path))
        store.load_or_initialize()

        store.record_fetched(make_ref('1'))
        store.record_fetched(make_ref('2'))

        assert [ref.id for ref in StateStore(str(tmp_path)).load().results] == ['1', '2']

    def test_no_duplicates(self, tmp_path):
        store = StateStore(str(tmp_path))
        store.load_or_initialize()

        store.record_fetched(make_ref('1'))
        store.record_fetched(make_ref('1'))

        assert store.state.size == 1

    def test_recorded_ref_keeps_title_and_links(self, tmp_path):
        store = StateStore(str(tmp_path))
        store.load_or_initialize()

        store.record_fetched(DocumentRef(id='5', kind='blogpost', status='draft', title='News',
                                         links=DocumentLinks(web_ui='/pages/5')))

        ref = store.load().results[0]
        assert (ref.kind, ref.status, ref.title, ref.links.web_ui) == ('page', 'current', 'News', '/pages/5')

    def test_keeps_space_cursors(self, tmp_path):
        store = StateStore(str(tmp_path))
        store.load_or_initialize()
        store.save_cursor('ENG', 'https://next/eng')

        store.record_fetched(make_ref('1'))

        assert store.load().space_cursors == {'ENG': 'https://next/eng'}


class TestSpaceCursors(unittest.TestCase):
    """Test per-space listing cursors."""

    def setUp(self):
        import tempfile
        self._tmp = tempfile.TemporaryDirectory()
        self.dump_dir = self._tmp.name
        self.store = StateStore(self.dump_dir, base_url=BASE_URL)
        self.store.load_or_initialize()

    def tearDown(self):
        self._tmp.cleanup()

    def test_unknown_space_starts_at_beginning(self):
        self.assertEqual(self.store.cursor_for('ENG'), '')

    def test_cursors_are_independent(self):
        self.store.save_cursor('ENG', 'https://next/eng')
        self.store.save_cursor('HR', 'https://next/hr')

        reloaded = StateStore(self.dump_dir)
        self.assertEqual(reloaded.cursor_for('ENG'), 'https://next/eng')
        self.assertEqual(reloaded.cursor_for('HR'), 'https://next/hr')

    def test_empty_cursor_clears_space(self):
        self.store.save_cursor('ENG', 'https://next/eng')
        self.store.save_cursor('ENG', '')

        self.assertEqual(StateStore(self.dump_dir).cursor_for('ENG'), '')
        with open(os.path.join(self.dump_dir, STATE_FILENAME), encoding='utf-8') as f:
            self.assertEqual(json.load(f)['spaces'], {})

    def test_fetched_titles_fall_back_to_id(self):
        self.store.record_fetched(make_ref('1', title='Hello'))
        self.store.record_fetched(make_ref('2', title=''))

        self.assertEqual(self.store.fetched_titles(), ['Hello', '2'])


class TestIngestionStateModel:
    """Test the state envelope model directly."""

    def test_from_dict_tolerates_missing_spaces(self):
        state = IngestionState.from_dict({'_links': {}, 'results': [{'id': 1}]})

        assert state.results[0].id == '1'
        assert state.size == 1
        assert state.space_cursors == {}
