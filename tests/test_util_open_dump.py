"""
open_dump のテスト。拡張子による解凍、明示指定、存在しないファイル。
"""

import bz2
import lzma

import pytest

from mwdump_records.util.open_dump import detect_compression, open_dump

DATA = b'<mediawiki></mediawiki>\n'


def test_detect_compression():
    """拡張子から bz2 / xz / none を推定する。"""
    assert detect_compression('enwiki-pages-articles.xml.bz2') == 'bz2'
    assert detect_compression('dump.xml.XZ') == 'xz'
    assert detect_compression('dump.xml.lzma') == 'xz'
    assert detect_compression('dump.xml') == 'none'


def test_open_plain(tmp_path):
    """非圧縮はそのまま読む。"""
    path = tmp_path / 'dump.xml'
    path.write_bytes(DATA)
    with open_dump(path) as f:
        assert f.read() == DATA


def test_open_bz2(tmp_path):
    """.bz2 は解凍して読む。"""
    path = tmp_path / 'dump.xml.bz2'
    path.write_bytes(bz2.compress(DATA))
    with open_dump(path) as f:
        assert f.read() == DATA


def test_open_xz(tmp_path):
    """.xz は解凍して読む。"""
    path = tmp_path / 'dump.xml.xz'
    path.write_bytes(lzma.compress(DATA))
    with open_dump(path) as f:
        assert f.read() == DATA


def test_forced_compression_overrides_extension(tmp_path):
    """compression 指定は拡張子より優先。"""
    path = tmp_path / 'dump.bin'
    path.write_bytes(bz2.compress(DATA))
    with open_dump(path, 'bz2') as f:
        assert f.read() == DATA


def test_missing_file_raises(tmp_path):
    """存在しないファイルは FileNotFoundError。"""
    with pytest.raises(FileNotFoundError, match='does not exist'):
        with open_dump(tmp_path / 'nope.xml'):
            pass


def test_unknown_compression_raises(tmp_path):
    """未知の compression は ValueError。"""
    with pytest.raises(ValueError):
        with open_dump(tmp_path / 'x.xml', 'zip'):
            pass
