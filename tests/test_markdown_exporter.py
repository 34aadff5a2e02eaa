"""Tests for document rendering, filename sanitization and writing."""

import os
import unittest
from unittest import mock

import pytest

from exporters import (
    ExportError,
    MarkdownExporter,
    sanitize_filename,
    strip_vendor_tokens
)
from models import DocumentLinks, DocumentRef

BASE_URL = 'https://x.atlassian.net/wiki'


def identity(html):
    return html


class TestSanitizeFilename(unittest.TestCase):
    """Test filesystem-safe names."""

    def test_reserved_characters_replaced(self):
        self.assertEqual(sanitize_filename('A/B:C*D', '1'), 'A_B_C_D')

    def test_every_reserved_character(self):
        self.assertEqual(sanitize_filename('a/b\\c:d*e?f"g<h>i|j', '1'), 'a_b_c_d_e_f_g_h_i_j')

    def test_empty_title_falls_back_to_id(self):
        self.assertEqual(sanitize_filename('', '98765'), '98765')

    def test_spaces_and_unicode_kept(self):
        self.assertEqual(sanitize_filename('Café menu 2024', '1'), 'Café menu 2024')


class TestStripVendorTokens:
    """Test removal of the internal namespace prefix."""

    def test_all_occurrences_removed(self):
        html = '<p>com.atlassian.confluence.macro.info and com.atlassian.confluence.plugins</p>'
        assert strip_vendor_tokens(html) == '<p>macro.info and plugins</p>'

    def test_partial_prefix_untouched(self):
        assert strip_vendor_tokens('com.atlassian.jira.x') == 'com.atlassian.jira.x'


class TestExportDocument:
    """Test rendered file contents and placement."""

    def test_writes_heading_body_and_footer(self, tmp_path):
        exporter = MarkdownExporter(str(tmp_path), BASE_URL, identity)
        ref = DocumentRef(id='123', title='Runbook', links=DocumentLinks(web_ui='/pages/123'))

        exported = exporter.export_document(ref, 'Body text')

        assert exported.path == os.path.join(str(tmp_path), 'Runbook.md')
        content = (tmp_path / 'Runbook.md').read_text(encoding='utf-8')
        assert content == (
            "# Runbook\n\nBody text\n\n---\n\n"
            "[View this page in Confluence](https://x.atlassian.net/wiki/pages/123)\n"
        )
        assert exported.size_bytes == len(content.encode('utf-8'))

    def test_sanitized_filename(self, tmp_path):
        exporter = MarkdownExporter(str(tmp_path), BASE_URL, identity)

        exporter.export_document(DocumentRef(id='1', title='A/B:C*D'), 'x')

        assert (tmp_path / 'A_B_C_D.md').exists()

    def test_empty_title_uses_id(self, tmp_path):
        exporter = MarkdownExporter(str(tmp_path), BASE_URL, identity)

        exporter.export_document(DocumentRef(id='555', title=''), 'x')

        content = (tmp_path / '555.md').read_text(encoding='utf-8')
        assert content.startswith('# 555\n\n')

    def test_overwrites_same_name(self, tmp_path):
        exporter = MarkdownExporter(str(tmp_path), BASE_URL, identity)
        ref = DocumentRef(id='1', title='Same')

        exporter.export_document(ref, 'first')
        exporter.export_document(ref, 'second')

        assert 'second' in (tmp_path / 'Same.md').read_text(encoding='utf-8')
        assert exporter.stats['total_files_written'] == 2

    def test_converter_failure_is_export_error(self, tmp_path):
        def broken(html):
            raise RuntimeError('parser exploded')

        exporter = MarkdownExporter(str(tmp_path), BASE_URL, broken)

        with pytest.raises(ExportError):
            exporter.export_document(DocumentRef(id='1', title='T'), 'x')

    def test_write_failure_is_export_error(self, tmp_path):
        exporter = MarkdownExporter(str(tmp_path), BASE_URL, identity)

        with mock.patch('builtins.open', side_effect=PermissionError('read-only')):
            with pytest.raises(ExportError):
                exporter.export_document(DocumentRef(id='1', title='T'), 'x')

        assert exporter.stats['total_errors'] == 1
