"""
CBOR 形式。ページごとに1つの CBOR マップを書き、外側の配列では囲まない（連結して読める列）。
"""

import io
from typing import Iterator

import cbor2

from mwdump_records.model import Page, page_from_dict, page_to_dict


class CborEncoder:
    name = 'cbor'
    # CBOR データ項目は自己区切りなので区切り文字は不要
    extension = '.cbor'

    def encode(self, page: Page) -> bytes:
        return cbor2.dumps(page_to_dict(page))

    def decode_stream(self, data: bytes) -> Iterator[Page]:
        fp = io.BytesIO(data)
        decoder = cbor2.CBORDecoder(fp)
        while fp.tell() < len(data):
            yield page_from_dict(decoder.decode())
