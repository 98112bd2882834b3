"""
出力形式の選択と書き出し。

形式は起動時に1回だけ get_encoder で選び、以後は全ページに同じ encoder を使う。
1ページ分を丸ごとバイト列にしてから1回の write で書くため、途中で失敗しても
出力はそれまでに書き終えたページの列（有効な先頭部分）のまま残る。
"""

from typing import BinaryIO, Iterator, Protocol

from mwdump_records.encode.bincode_format import BincodeEncoder
from mwdump_records.encode.cbor_format import CborEncoder
from mwdump_records.encode.jsonl_format import JsonlEncoder
from mwdump_records.encode.msgpack_format import MsgpackEncoder
from mwdump_records.errors import SinkWriteFailure
from mwdump_records.model import Page


class RecordEncoder(Protocol):
    name: str
    extension: str

    def encode(self, page: Page) -> bytes: ...

    def decode_stream(self, data: bytes) -> Iterator[Page]: ...


_ENCODERS = {
    'cbor': CborEncoder,
    'jsonl': JsonlEncoder,
    'msgpack': MsgpackEncoder,
    'bincode': BincodeEncoder,
}

FORMATS = tuple(_ENCODERS)
DEFAULT_FORMAT = 'cbor'


def get_encoder(fmt: str) -> RecordEncoder:
    """形式名から encoder を作る。未知の名前は ValueError。"""
    try:
        return _ENCODERS[fmt.lower()]()
    except KeyError:
        raise ValueError(
            f"unknown output format {fmt!r} (choose from: {', '.join(FORMATS)})"
        ) from None


def decode_stream(fmt: str, data: bytes) -> Iterator[Page]:
    """出力済みのバイト列を読み戻して Page を yield する（検証・テスト用）。"""
    return get_encoder(fmt).decode_stream(data)


class EncodingDispatcher:
    """選んだ encoder 1つを保持し、ページごとに同じ呼び方で書き出す。"""

    def __init__(self, encoder: RecordEncoder, sink: BinaryIO) -> None:
        self.encoder = encoder
        self.sink = sink
        self.records_written = 0
        self.bytes_written = 0

    @property
    def format(self) -> str:
        return self.encoder.name

    def write(self, page: Page) -> None:
        """
        page を直列化して sink に書き、flush する。
        書き込み失敗は SinkWriteFailure（再試行はしない。バイト列の重複書き込みになりうるため）。
        """
        data = self.encoder.encode(page)
        try:
            self.sink.write(data)
            self.sink.flush()
        except (OSError, ValueError) as e:
            raise SinkWriteFailure(self.records_written, e) from e
        self.records_written += 1
        self.bytes_written += len(data)
