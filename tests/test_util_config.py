"""
config のテスト。_env_* と parse_args（環境変数・オプション）。
"""

from pathlib import Path

import pytest

from mwdump_records.util import config


def test_env_str_unset(monkeypatch):
    """環境変数未設定なら default。"""
    monkeypatch.delenv('MWDUMP_FORMAT', raising=False)
    assert config._env_str('MWDUMP_FORMAT', 'cbor') == 'cbor'


def test_env_str_blank_uses_default(monkeypatch):
    """空白のみのときは default。"""
    monkeypatch.setenv('MWDUMP_FORMAT', '   ')
    assert config._env_str('MWDUMP_FORMAT', 'cbor') == 'cbor'


def test_env_path_set(monkeypatch):
    """環境変数設定時はその Path、未設定で default None なら None。"""
    monkeypatch.setenv('MWDUMP_OUTPUT', '/custom/out.cbor')
    assert config._env_path('MWDUMP_OUTPUT', None) == Path('/custom/out.cbor')
    monkeypatch.delenv('MWDUMP_OUTPUT')
    assert config._env_path('MWDUMP_OUTPUT', None) is None


def test_parse_args_env_log_every(monkeypatch):
    """MWDUMP_LOG_EVERY は整数に変換されて既定値になる。"""
    monkeypatch.setenv('MWDUMP_LOG_EVERY', '500')
    assert config.parse_args(['convert', 'dump.xml']).log_every == 500


def test_parse_args_convert_defaults(monkeypatch):
    """オプションなしなら cbor、stdout、auto、10000 ページごと。"""
    for key in ('MWDUMP_FORMAT', 'MWDUMP_OUTPUT', 'MWDUMP_LOG_EVERY'):
        monkeypatch.delenv(key, raising=False)
    args = config.parse_args(['convert', 'dump.xml.bz2'])
    assert args.command == 'convert'
    assert args.input == 'dump.xml.bz2'
    assert args.format == 'cbor'
    assert args.output is None
    assert args.compression == 'auto'
    assert args.log_every == 10000


def test_parse_args_env_format(monkeypatch):
    """MWDUMP_FORMAT が既定値になる。"""
    monkeypatch.setenv('MWDUMP_FORMAT', 'jsonl')
    args = config.parse_args(['convert', 'dump.xml'])
    assert args.format == 'jsonl'


def test_parse_args_cli_overrides_env(monkeypatch, tmp_path):
    """--format / --output は Env より優先。"""
    monkeypatch.setenv('MWDUMP_FORMAT', 'jsonl')
    out = tmp_path / 'pages.msgpack'
    args = config.parse_args([
        'convert', 'dump.xml', '--format', 'msgpack', '--output', str(out),
        '--compression', 'bz2', '--log-every', '0',
    ])
    assert args.format == 'msgpack'
    assert args.output == out
    assert args.compression == 'bz2'
    assert args.log_every == 0


def test_parse_args_find():
    """find は input と title を取る。"""
    args = config.parse_args(['find', 'dump.xml', 'Main Page', '--format', 'bincode'])
    assert args.command == 'find'
    assert args.title == 'Main Page'
    assert args.format == 'bincode'


def test_parse_args_rejects_unknown_format():
    """選択肢外の --format は argparse のエラー。"""
    with pytest.raises(SystemExit):
        config.parse_args(['convert', 'dump.xml', '--format', 'yaml'])


def test_parse_args_no_subcommand():
    """サブコマンドなしは command=None。"""
    assert config.parse_args([]).command is None


def test_parse_args_rejects_env_format_outside_choices(monkeypatch, capsys):
    """MWDUMP_FORMAT も --format と同じ選択肢で検査する（大文字は不可）。"""
    monkeypatch.setenv('MWDUMP_FORMAT', 'JSONL')
    with pytest.raises(SystemExit) as exc_info:
        config.parse_args(['convert', 'dump.xml'])
    assert exc_info.value.code == 2
    assert 'MWDUMP_FORMAT' in capsys.readouterr().err
    with pytest.raises(SystemExit):
        config.parse_args(['convert', 'dump.xml', '--format', 'JSONL'])


def test_parse_args_rejects_non_integer_env_log_every(monkeypatch, capsys):
    """整数でない MWDUMP_LOG_EVERY は --log-every と同じく argparse のエラー。"""
    monkeypatch.setenv('MWDUMP_LOG_EVERY', 'often')
    with pytest.raises(SystemExit) as exc_info:
        config.parse_args(['convert', 'dump.xml'])
    assert exc_info.value.code == 2
    assert "invalid int value: 'often'" in capsys.readouterr().err


def test_invalid_env_does_not_break_parser_construction(monkeypatch):
    """不正な環境変数があってもパーサの構築自体は失敗しない。"""
    monkeypatch.setenv('MWDUMP_LOG_EVERY', 'often')
    monkeypatch.setenv('MWDUMP_FORMAT', 'yaml')
    assert config.build_parser().prog == 'mwdump_records'
