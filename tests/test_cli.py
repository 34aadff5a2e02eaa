"""Tests for the confuddle command-line entry point."""

from unittest import mock

import pytest

import confuddle
from config_loader import ENV_KEY_MAP


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run every CLI test in an empty directory with no Confluence variables set."""
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEY_MAP:
        monkeypatch.delenv(key, raising=False)


class TestArgumentParser:
    """Test flag parsing."""

    def test_defaults(self):
        args = confuddle.create_argument_parser().parse_args([])

        assert args.summarise is None
        assert args.query is None
        assert args.search == ''
        assert args.line_range == 4
        assert args.verbose == 0

    def test_summarise_without_file(self):
        args = confuddle.create_argument_parser().parse_args(['--summarise'])
        assert args.summarise == ''

    def test_query_flags(self):
        args = confuddle.create_argument_parser().parse_args(['-s', 'k8s', '-q', 'How?', '-r', '10'])
        assert (args.search, args.query, args.line_range) == ('k8s', 'How?', 10)


class TestMain:
    """Test exit codes."""

    def test_no_arguments_prints_usage(self, capsys):
        assert confuddle.main([]) == 0
        assert 'usage: confuddle' in capsys.readouterr().out

    def test_missing_configuration_is_exit_2(self, capsys):
        assert confuddle.main(['--spaces', 'ENG']) == 2
        assert 'Configuration error' in capsys.readouterr().err

    def test_export_success(self, tmp_path):
        (tmp_path / '.env').write_text(
            'CONFLUENCE_BASE_URL=https://x.atlassian.net/wiki\n'
            'CONFLUENCE_USER=user\n'
            'CONFLUENCE_API_TOKEN=token\n'
            f'CONFLUENCE_DUMP_DIR={tmp_path / "dump"}\n',
            encoding='utf-8'
        )
        report = mock.Mock(has_failures=False)
        report.format_console_report.return_value = 'EXPORT REPORT'

        with mock.patch.object(confuddle, 'IngestionPipeline') as pipeline_cls:
            pipeline_cls.return_value.run.return_value = report
            exit_code = confuddle.main(['--spaces', 'ENG'])

        assert exit_code == 0
        settings = pipeline_cls.call_args[0][0]
        assert settings.spaces == ('ENG',)
        assert settings.base_url == 'https://x.atlassian.net/wiki'

    def test_export_with_failures_is_exit_1(self, tmp_path):
        (tmp_path / '.env').write_text(
            'CONFLUENCE_BASE_URL=https://x.atlassian.net/wiki\nCONFLUENCE_USER=u\n'
            'CONFLUENCE_API_TOKEN=t\nCONFLUENCE_SPACES=ENG\nCONFLUENCE_DUMP_DIR=dump\n',
            encoding='utf-8'
        )
        report = mock.Mock(has_failures=True, failures=[mock.Mock()])
        report.format_console_report.return_value = ''

        with mock.patch.object(confuddle, 'IngestionPipeline') as pipeline_cls:
            pipeline_cls.return_value.run.return_value = report
            assert confuddle.main(['-v']) == 1

    def test_interrupt_is_exit_130(self, tmp_path):
        (tmp_path / '.env').write_text(
            'CONFLUENCE_BASE_URL=https://x.atlassian.net/wiki\nCONFLUENCE_USER=u\n'
            'CONFLUENCE_API_TOKEN=t\nCONFLUENCE_SPACES=ENG\nCONFLUENCE_DUMP_DIR=dump\n',
            encoding='utf-8'
        )

        with mock.patch.object(confuddle, 'IngestionPipeline') as pipeline_cls:
            pipeline_cls.return_value.run.side_effect = KeyboardInterrupt
            assert confuddle.main(['-v']) == 130

    def test_query_without_matches(self, tmp_path, capsys):
        dump = tmp_path / 'dump'
        dump.mkdir()
        (dump / 'Lunch.md').write_text('# Lunch\n', encoding='utf-8')

        exit_code = confuddle.main(['--dump-dir', str(dump), '-s', 'terraform', '-q', 'Anything?'])

        assert exit_code == 0
        assert 'No files matched the search term.' in capsys.readouterr().out

    def test_summarise_selected_file(self, tmp_path, monkeypatch, capsys):
        dump = tmp_path / 'dump'
        dump.mkdir()
        (dump / 'A.md').write_text('# A\n', encoding='utf-8')
        (dump / 'B.md').write_text('# B\n', encoding='utf-8')
        monkeypatch.setattr('builtins.input', lambda prompt: '1')

        with mock.patch.object(confuddle.DocumentAssistant, 'summarise', return_value='ok') as summarise:
            exit_code = confuddle.main(['--dump-dir', str(dump), '--summarise'])

        assert exit_code == 0
        assert summarise.call_args[0][0].name == 'B.md'
        assert '1: B.md' in capsys.readouterr().out
