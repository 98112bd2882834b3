"""
MediaWiki XML ダンプのバイト列を低レベルの XML イベント列（START / TEXT / END / EOF）に変換する。
XMLPullParser にチャンク単位で流し込み、ダンプ全体をメモリに載せない。
"""

import lzma
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Optional

from mwdump_records.errors import MalformedXml, TruncatedDump, UnreadableInput

START = 'start'
TEXT = 'text'
END = 'end'
EOF = 'eof'

DEFAULT_CHUNK_SIZE = 1 << 20


@dataclass(frozen=True)
class XmlEvent:
    kind: str
    name: str = ''
    attrs: dict = field(default_factory=dict)
    text: Optional[str] = None
    # パーサに渡し終えたバイト数（おおよその入力位置）
    offset: int = 0


def _local_tag(tag: str) -> str:
    """名前空間を除いたローカル名を返す。"""
    return tag.split('}')[-1] if tag and '}' in str(tag) else (tag or '')


def _local_attrs(attrib: dict) -> dict:
    return {_local_tag(k): v for k, v in attrib.items()}


def _wrap_parse_error(e: ET.ParseError, offset: int) -> MalformedXml:
    line, column = getattr(e, 'position', (None, None))
    msg = str(e)
    # ParseError のメッセージ末尾の位置表記は MalformedXml 側で付け直す
    if ': line ' in msg:
        msg = msg.split(': line ')[0]
    return MalformedXml(msg, line=line, column=column, offset=offset)


def _read_chunk(stream: BinaryIO, chunk_size: int, offset: int) -> bytes:
    """
    stream から1チャンク読む。解凍中のエラーは DumpError に置き換える。
    bz2 / lzma は圧縮データが途中で切れていると EOFError、壊れていると OSError / LZMAError を送出する。
    """
    try:
        return stream.read(chunk_size)
    except EOFError as e:
        raise TruncatedDump(offset=offset, reason=f'compressed input ended early: {e}') from e
    except (OSError, lzma.LZMAError) as e:
        raise UnreadableInput(str(e), offset=offset) from e


def iter_events(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[XmlEvent]:
    """
    stream（解凍済みのバイナリストリーム）から XmlEvent を yield する。

    - 要素の直下テキストは、その要素の END の直前に TEXT として1回で渡す（エンティティ展開済み）。
    - ルート直下の要素（page, siteinfo）が閉じたら木を捨て、保持するのは最大1ページ分。
    - 入力が尽きた時点で要素が開いたままなら parser を close せずに EOF を返し、
      途中切れかどうかの判断は呼び出し側に任せる。
    """
    parser = ET.XMLPullParser(events=('start', 'end'))
    offset = 0
    depth = 0
    root: Optional[ET.Element] = None

    def drain() -> Iterator[XmlEvent]:
        nonlocal depth, root
        try:
            for event, elem in parser.read_events():
                name = _local_tag(elem.tag)
                if event == 'start':
                    depth += 1
                    if depth == 1:
                        root = elem
                    yield XmlEvent(START, name, _local_attrs(elem.attrib), offset=offset)
                    continue
                # 直下テキスト = 先頭テキスト + 各子要素の直後のテキスト（子の中身は含めない）
                text = (elem.text or '') + ''.join(child.tail or '' for child in elem)
                if text:
                    yield XmlEvent(TEXT, name, text=text, offset=offset)
                yield XmlEvent(END, name, offset=offset)
                depth -= 1
                if depth >= 1:
                    # tail は親の END で読むので残す
                    tail = elem.tail
                    elem.clear()
                    elem.tail = tail
                if depth == 1 and root is not None:
                    # ルートに残った空の子要素を捨てる
                    del root[:]
        except ET.ParseError as e:
            raise _wrap_parse_error(e, offset) from e

    while True:
        chunk = _read_chunk(stream, chunk_size, offset)
        if not chunk:
            break
        offset += len(chunk)
        try:
            parser.feed(chunk)
        except ET.ParseError as e:
            raise _wrap_parse_error(e, offset) from e
        yield from drain()

    if depth == 0:
        try:
            parser.close()
        except ET.ParseError as e:
            raise _wrap_parse_error(e, offset) from e
        yield from drain()
    yield XmlEvent(EOF, offset=offset)
