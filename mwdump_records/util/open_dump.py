"""
ダンプファイルを開く。拡張子（または明示指定）で bz2 / xz を透過的に解凍する。
"""

import bz2
import lzma
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

COMPRESSION_AUTO = 'auto'
COMPRESSIONS = (COMPRESSION_AUTO, 'none', 'bz2', 'xz')


def detect_compression(path: Union[str, Path]) -> str:
    """拡張子から圧縮形式を推定する。.bz2 → bz2、.xz / .lzma → xz、それ以外は none。"""
    name = str(path).lower()
    if name.endswith('.bz2'):
        return 'bz2'
    if name.endswith(('.xz', '.lzma')):
        return 'xz'
    return 'none'


@contextmanager
def open_dump(path: Union[str, Path], compression: str = COMPRESSION_AUTO) -> Iterator[BinaryIO]:
    """
    ダンプを解凍済みのバイナリストリームとして開く。path が '-' なら stdin。
    ファイルが無ければ FileNotFoundError。
    """
    if compression not in COMPRESSIONS:
        raise ValueError(f"unknown compression {compression!r} (choose from: {', '.join(COMPRESSIONS)})")
    if str(path) == '-':
        raw = sys.stdin.buffer
        mode = 'none' if compression == COMPRESSION_AUTO else compression
    else:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Dump file does not exist: {path}")
        raw = None
        mode = detect_compression(path) if compression == COMPRESSION_AUTO else compression

    if raw is None:
        if mode == 'bz2':
            f = bz2.open(path, 'rb')
        elif mode == 'xz':
            f = lzma.open(path, 'rb')
        else:
            f = open(path, 'rb')
    elif mode == 'bz2':
        f = bz2.BZ2File(raw, 'rb')
    elif mode == 'xz':
        f = lzma.LZMAFile(raw, 'rb')
    else:
        f = raw
    try:
        yield f
    finally:
        if f is not sys.stdin.buffer:
            f.close()
