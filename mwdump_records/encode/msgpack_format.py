"""
MessagePack 形式。CBOR と同じく、ページごとのマップを区切りなしで連結する。
"""

from typing import Iterator

import msgpack

from mwdump_records.model import Page, page_from_dict, page_to_dict


class MsgpackEncoder:
    name = 'msgpack'
    extension = '.msgpack'

    def encode(self, page: Page) -> bytes:
        return msgpack.packb(page_to_dict(page), use_bin_type=True)

    def decode_stream(self, data: bytes) -> Iterator[Page]:
        # 本文は 1 レコードで数 MiB になりうるので既定の上限を外す
        unpacker = msgpack.Unpacker(raw=False, max_buffer_size=0)
        unpacker.feed(data)
        for obj in unpacker:
            yield page_from_dict(obj)
